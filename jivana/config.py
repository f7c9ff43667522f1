"""
Application configuration and settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    APP_NAME: str = "Jivana Health"
    APP_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api"
    ENVIRONMENT: str = "development"  # development, production
    DEBUG: bool = False

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Database
    DATABASE_URL: str = "postgresql://localhost/jivana"

    # Anthropic API
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    ANALYSIS_MAX_TOKENS: int = 2000

    # Object storage
    STORAGE_BACKEND: str = "memory"  # memory, s3
    S3_BUCKET_NAME: str = "jivana-blood-tests"
    AWS_REGION: str = "us-east-1"
    SIGNED_URL_EXPIRES_SECONDS: int = 3600

    # Uploads
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024  # 5MB

    # CORS - Allow these origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def database_url(self) -> str:
        """Database URL with Heroku/Render style postgres:// scheme fixed"""
        if self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql://", 1)
        return self.DATABASE_URL

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


# Create settings instance
settings = Settings()


# Instruction sent with every analysis request
ANALYSIS_SYSTEM_PROMPT = """You are a medical expert analyzing blood test results. Provide insights and recommendations based on the test values.

The user message is a JSON object mapping each measured metric to its numeric value.

Return ONLY valid JSON in this EXACT format (no markdown, no explanation):

{
    "summary": "Overall health status summary",
    "insights": ["Key observation from the blood test"],
    "recommendations": ["Health recommendation based on the results"],
    "riskFactors": ["Potential health risk identified"]
}

RULES:
1. All four fields are required
2. "summary" is a single string
3. "insights", "recommendations" and "riskFactors" are lists of strings
4. Use an empty list for "riskFactors" if none are identified
5. You provide EDUCATIONAL information only, NEVER a medical diagnosis"""
