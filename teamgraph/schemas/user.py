from pydantic import BaseModel


class Identity(BaseModel):
    """The authenticated caller, as resolved by the identity provider."""
    user_id: str
    email: str
