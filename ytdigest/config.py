from pydantic_settings import BaseSettings

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_4) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/85.0.4183.83 Safari/537.36,gzip(gfe)"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Generation
    generation_provider: str = "openai"  # "openai" or "anthropic"
    cleanup_model: str = "gpt-4o-mini"
    digest_model: str = "gpt-4o"
    chapter_model: str = "gpt-4o"
    generation_temperature: float = 0.0
    claude_max_tokens: int = 8192
    max_retries: int = 0

    # Fetching
    request_timeout: int = 30
    user_agent: str = USER_AGENT
    caption_languages: list[str] = []  # preferred languageCodes, in order

    # Database
    database_url: str = "sqlite:///data/ytdigest.db"

    # Output
    output_dir: str = "out"
    render_html: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def generation_api_key(self) -> str:
        if self.generation_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


def get_settings() -> Settings:
    return Settings()
