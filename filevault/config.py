from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Provider selection: "FS" | "S3" (case-insensitive, anything else -> FS)
    STORAGE_PROVIDER: str = "FS"

    # Filesystem provider settings
    STORAGE_BASE_PATH: str = "storage/data"

    # S3 provider settings
    AWS_S3_BUCKET: str = ""
    AWS_REGION: str = "us-east-1"
    AWS_S3_ENDPOINT_URL: str | None = None  # MinIO / localstack / moto
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    # Logging settings
    LOG_LEVEL: str = "INFO"

    # "env_file": ".env" reads variables from a local .env file as well
    # "extra": "ignore" drops variables that have no matching field
    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
