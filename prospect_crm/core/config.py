from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    debug: bool = True
    log_level: str = "INFO"
    log_timezone: str = "local"  # Options: "local" (server timezone), "UTC"

    # Spreadsheet-backed system of record (Apps Script web app URL).
    # Leave empty to run against the bundled snapshot only.
    google_script_url: str = ""
    remote_timeout_seconds: float = 15.0  # Applies to every remote read/write

    # Durable key-value cache (JSON file)
    cache_path: str = ".crm_cache.json"

    # Import settings
    upload_max_file_size_mb: int = 10
    csv_delimiter: str = ","

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
