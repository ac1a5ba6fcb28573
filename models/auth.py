from typing import Optional
from pydantic import BaseModel


# -----------------------------------------------------
# CURRENT USER (resolved from the Supabase access token)
# -----------------------------------------------------
class CurrentUser(BaseModel):
    id: str                           # Supabase Auth UID; owns clients/logs
    email: str
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
