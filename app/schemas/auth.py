from pydantic import BaseModel, Field

from app.schemas.my_base_model import CustomBaseModel


class NonceResponse(CustomBaseModel):
    """Response model for nonce generation - output"""

    nonce: str = ""
    address: str = ""


class SignInRequest(BaseModel):
    """Request model for SIWE sign-in - input validation"""

    message: str = Field(..., description="EIP-4361 message signed by the wallet")
    signature: str = Field(..., description="0x-prefixed personal_sign signature of the message")
    nonce: str = Field(..., description="Nonce returned by /auth/nonce")


class SignInResponse(CustomBaseModel):
    """Response model for sign-in - output. The refresh token is only sent as a cookie."""

    address: str
    access_token: str


class RefreshResponse(CustomBaseModel):
    """Response model for access token refresh - output"""

    access_token: str
