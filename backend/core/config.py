import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    def __init__(self) -> None:
        self.env = os.getenv("APP_ENV", "local")
        self.data_dir: str = os.getenv("DATA_DIR", os.path.join(".", "data"))
        self.state_file: str = os.getenv(
            "STATE_FILE",
            os.path.join(self.data_dir, "stockpilot.json"),
        )
        self.database_url: str = os.getenv(
            "DATABASE_URL",
            f"sqlite:///{os.path.join(self.data_dir, 'stockpilot.db')}",
        )
        self.database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

        # 'local' (key/value table) | 'file' (JSON file) | 'remote' (/api/state over HTTP)
        self.storage_backend: str = os.getenv("STORAGE_BACKEND", "local").strip().lower() or "local"
        self.storage_key: str = os.getenv("STORAGE_KEY", "stockpilot_v1")
        self.remote_state_url: str = os.getenv("REMOTE_STATE_URL", "http://localhost:3000")

        self.low_stock_threshold: int = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))
        self.max_logo_bytes: int = int(os.getenv("MAX_LOGO_BYTES", str(2 * 1024 * 1024)))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
