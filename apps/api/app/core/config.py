from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "dev"
    root_path: str = ""
    log_level: str = "INFO"

    postgres_db: str = "family_tree"
    postgres_user: str = "family_tree_user"
    postgres_password: str = "family_tree_pass"
    postgres_host: str = "db"
    postgres_port: int = 5432

    # Family graph construction
    join_link_base_url: str = "https://familytree.app"
    family_username_suffix_digits: int = 3
    family_username_max_attempts: int = 5
    placeholder_username_prefix_length: int = 4
    query_member_preview_limit: int = 6
    default_family_cover_image: str = (
        "https://familytreeapp-bucket.nyc3.cdn.digitaloceanspaces.com/defaults/family-avatar.png"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
