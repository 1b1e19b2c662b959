class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    GENERATE_BABY = V1 + "/generate-baby"
    HEALTHZ = "/healthz"


class ExternalURIs:
    GENERATED_PREFIX = "/generated"


SUCCESS_MESSAGE = "Baby generated safely with full safety pipeline"
