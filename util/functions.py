import time


def artifact_filename(prefix: str = "baby", now_ms: int | None = None) -> str:
    """
    - Build the durable filename for a finished artifact: `<prefix>_<epoch-ms>.png`.
    """
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}_{ts}.png"


def classification_label(stage_id: str, verdict: str) -> str:
    return f"{stage_id}: {verdict}"


def clip_text(text: str, max_chars: int = 300) -> str:
    # Remote error bodies can be whole HTML pages.
    text = text or ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + " …"
