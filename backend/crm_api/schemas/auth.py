from pydantic import BaseModel, Field, field_validator

class LoginIn(BaseModel):
    username: str
    password: str

    @field_validator("username", "password")
    @classmethod
    def not_empty(cls, v: str):
        if not str(v).strip():
            raise ValueError("should not be empty")
        return v

class LoginUser(BaseModel):
    id: int
    full_name: str
    role: str

class LoginOut(BaseModel):
    access_token: str = Field(alias="accessToken")
    permissions: list = Field(default_factory=list)
    user: LoginUser

    class Config:
        populate_by_name = True
