from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    AUTH_SECRET: str

    TOKEN_TTL_SECONDS: int = 60 * 60 * 24
    LOG_LEVEL: str = "INFO"

    # cria as tabelas no startup (sqlite de dev); em produção usar alembic
    AUTO_CREATE_TABLES: bool = False

    # politicas de rattrapage (pendentes de confirmação do produto)
    PW_CAPACITY_EXEMPT: bool = True
    BOUND_BY_NEXT_OCCURRENCE: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
