from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "esg_lite"
    db_username: str = "esg_lite"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    queue_backend: str = "postgres"
    ocr_queue_name: str = "ocr-processing"
    ocr_retry_limit: int = 3
    ocr_retry_delay_seconds: int = 60
    ocr_expire_in_seconds: int = 3600
    queue_max_waiting: int = 0
    job_poll_interval_seconds: int = 5

    stale_processing_minutes: int = 30
    stale_sweep_interval_seconds: int = 300

    rate_limit_window_seconds: int = 60
    rate_limit_tiers: dict[str, int] = {
        "FREE": 3,
        "LITE": 8,
        "STANDARD": 12,
        "LARGE": 20,
        "ENTERPRISE": 30,
    }
    rate_limit_surge_factor: float = 0.5

    surge_windows: list[str] = []
    timezone: str = "Europe/Moscow"

    files_root: str = "/app/files"
    max_upload_bytes: int = 50 * 1024 * 1024

    ocr_provider: str = "hybrid"
    pdf_engine: str = "pdfplumber"
    pdf_min_text_chars: int = 50
    ocr_min_text_chars: int = 10
    ocr_timeout_seconds: int = 180

    yandex_vision_api_key: str = ""
    yandex_iam_token: str = ""
    yandex_folder_id: str = ""
    yandex_vision_url: str = "https://vision.api.cloud.yandex.net/vision/v1/batchAnalyze"

    transport_analysis_provider: str = "foundation_models"
    foundation_models_api_key: str = ""
    foundation_models_base_url: str = "https://foundation-models.api.cloud.ru/v1"
    foundation_models_model: str = "GigaChat/GigaChat-2-Max"
    foundation_models_timeout_seconds: int = 30

    low_confidence_threshold: float = 0.6

    api_host: str = "0.0.0.0"
    api_port: int = 8000
