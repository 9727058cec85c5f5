from pydantic import BaseModel


class FitnessConfig(BaseModel):
    """Configuration for fitness provider API clients."""

    strava_base_url: str = "https://www.strava.com/api/v3"
    strava_token_url: str = "https://www.strava.com/oauth/token"
    fitbit_base_url: str = "https://api.fitbit.com"
    fitbit_token_url: str = "https://api.fitbit.com/oauth2/token"
    timeout_seconds: float = 30.0
    max_connections: int = 20
    max_retries: int = 3
    strava_page_size: int = 200
    fitbit_page_size: int = 100
