# citymarket/config.py
"""Runtime settings.

Values come from the environment (optionally a ``.env`` file). Without
Supabase credentials the service still runs; auth operations then report a
configuration error instead of calling out.
"""
import os
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_KEY = "placeholder-key"

class Settings(BaseModel):
    supabase_url: str = PLACEHOLDER_URL
    supabase_anon_key: str = PLACEHOLDER_KEY
    site_url: str = "http://localhost:8000"
    # 0 disables the background token refresh
    auth_refresh_minutes: int = 50
    http_timeout: float = 10.0

    @property
    def is_placeholder(self) -> bool:
        return self.supabase_url == PLACEHOLDER_URL or self.supabase_anon_key == PLACEHOLDER_KEY

def load_settings() -> Settings:
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL") or PLACEHOLDER_URL,
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or PLACEHOLDER_KEY,
        site_url=os.getenv("SITE_URL", "http://localhost:8000").rstrip("/"),
        auth_refresh_minutes=int(os.getenv("AUTH_REFRESH_MINUTES", 50)),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", 10)),
    )
