import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")

    # CORS
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")

    # Replicate (remote inference service)
    REPLICATE_API_TOKEN: str | None = Field(
        default=None, validation_alias="REPLICATE_API_TOKEN"
    )
    REPLICATE_API_URL: str = Field(
        default="https://api.replicate.com/v1/predictions",
        validation_alias="REPLICATE_API_URL",
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="HTTP_TIMEOUT_SECONDS"
    )
    POLL_INTERVAL_MS: int = Field(default=1000, validation_alias="POLL_INTERVAL_MS")
    POLL_TIMEOUT_MS: int = Field(default=120000, validation_alias="POLL_TIMEOUT_MS")

    # Model identifiers
    BABY_MODEL_VERSION: str = Field(
        default="smoosh-sh/baby-mystic", validation_alias="BABY_MODEL_VERSION"
    )
    INPAINT_MODEL_VERSION: str = Field(
        default="stability-ai/stable-diffusion-inpainting",
        validation_alias="INPAINT_MODEL_VERSION",
    )
    NSFW_MODEL_VERSION: str = Field(
        default="falcons-ai/nsfw_image_detection",
        validation_alias="NSFW_MODEL_VERSION",
    )

    # Hosting & masks
    HOSTING_BASE_URL: str = Field(
        default="https://aichild.webhop.me", validation_alias="HOSTING_BASE_URL"
    )
    BABY_TORSO_RECT_MASK: str = Field(
        default="https://aichild.webhop.me/masks/baby-torso-rect.png",
        validation_alias="BABY_TORSO_RECT_MASK",
    )
    LOWER_FACE_RECT_MASK: str = Field(
        default="https://aichild.webhop.me/masks/lower-face-rect.png",
        validation_alias="LOWER_FACE_RECT_MASK",
    )

    # Artifact persistence: "passthrough" keeps the remote URL, "directory" copies locally
    ARTIFACT_STORE: str = Field(default="passthrough", validation_alias="ARTIFACT_STORE")
    ARTIFACT_DIR: str = Field(default="generated", validation_alias="ARTIFACT_DIR")

    # Logging knobs
    LOGGER_NAME: str = "safe-baby-generator"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    BEARD_REMOVAL_PROMPT: str = (
        "clean-shaven chin and cheeks, natural skin texture, photorealistic"
    )
    BEARD_REMOVAL_NEGATIVE_PROMPT: str = "beard, mustache, stubble, facial hair"

    CLOTHING_PROMPT: str = (
        "a soft cotton baby onesie, pastel colors, short sleeves, "
        "photorealistic fabric, realistic fit"
    )
    CLOTHING_NEGATIVE_PROMPT: str = (
        "nude, topless, shirtless, transparent, see-through, adult clothing"
    )

    CLOTHING_RETRY_PROMPT: str = (
        "a cute baby outfit, full coverage, soft fabric, cartoon style, "
        "playful, innocent"
    )
    CLOTHING_RETRY_NEGATIVE_PROMPT: str = (
        "nude, topless, shirtless, transparent, see-through, adult clothing, "
        "realistic, detailed skin"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
