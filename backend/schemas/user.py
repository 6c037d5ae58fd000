from pydantic import BaseModel, ConfigDict
from typing import Dict

# Login accepts either username or email in one field
class UserLogin(BaseModel):
    login: str
    password: str

# Output schema for user profile details
class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    first_name: str
    last_name: str
    is_active: bool
    permissions: Dict[str, bool]

    model_config = ConfigDict(from_attributes=True)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
