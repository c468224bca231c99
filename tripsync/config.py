from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    # Google AI Configuration
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash-latest"
    ai_temperature: float = 0.6
    enable_ai_generation: bool = True
    fallback_to_templates: bool = True
    
    # Storage Configuration
    storage_backend: str = "memory"  # memory, firestore
    firestore_collection: str = "tripsync_kv"
    
    # Firebase Configuration (only needed for the firestore backend)
    firebase_project_id: Optional[str] = None
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: str = "https://accounts.google.com/o/oauth2/auth"
    firebase_token_uri: str = "https://oauth2.googleapis.com/token"
    
    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "*"
    
    # Environment Configuration
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"
    
    # Itinerary Configuration
    max_plan_packages: int = 3
    max_replacement_alternatives: int = 3
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"
    
    @property
    def ai_enabled(self) -> bool:
        """AI generation needs both the feature flag and an API key"""
        return self.enable_ai_generation and bool(self.gemini_api_key)
    
    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
    
    def has_firebase_credentials(self) -> bool:
        return all([
            self.firebase_project_id,
            self.firebase_private_key,
            self.firebase_client_email,
        ])
    
    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
