from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    SENTIMENT_BACKEND: str = "openai"  # openai | finbert | none

    REDDIT_CLIENT_ID: str = ""
    REDDIT_CLIENT_SECRET: str = ""
    REDDIT_USER_AGENT: str = "SocialListener/1.0 (Brand Monitoring Tool)"

    YOUTUBE_API_KEY: str = ""
    GOOGLE_SEARCH_ENGINE_ID: str = ""
    NEWSAPI_KEY: str = ""

    DISABLED_SOURCES: str = ""  # comma separated adapter names

    @property
    def disabled_sources(self) -> set[str]:
        return {name.strip().lower() for name in self.DISABLED_SOURCES.split(",") if name.strip()}


def get_settings() -> Settings:
    return Settings()
