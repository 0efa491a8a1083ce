from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # URL padrão do Apps Script (a URL salva em /settings tem precedência)
    GOOGLE_SHEETS_URL: str = ""
    EXPECTED_HOST: str = "script.google.com"
    CONFIG_STORE_PATH: str = "data/local_settings.json"

    LOG_ENABLED: bool = True
    LOG_LEVEL: str = "debug"

    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0
    RETRY_BACKOFF: str = "linear"
    RETRY_ON_REJECTION: bool = False
    AUTO_FALLBACK: bool = False

    TRANSPORT: str = "auto"
    HTTP_TIMEOUT: float = 15.0
    FRAME_TIMEOUT: float = 60.0

    WHATSAPP_FALLBACK_NUMBER: str = "558293460460"
    SHEET_VIEW_URL_CLIENTE: str = ""
    SHEET_VIEW_URL_LEAD: str = ""

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
