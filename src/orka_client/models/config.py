"""Configuration models."""

from pydantic import BaseModel, model_validator


class AuthConfig(BaseModel):
    """Authentication configuration.

    Either an API token, or an email and password used to log in, must be
    given. The license key is only needed for administrative operations.
    """

    token: str | None = None
    email: str | None = None
    password: str | None = None
    license_key: str | None = None

    @model_validator(mode="after")
    def validate_credentials(self) -> "AuthConfig":
        """Validate that some way to obtain a token is configured.

        Returns:
            Validated config

        Raises:
            ValueError: If neither a token nor email and password are set
        """
        if self.token is None and (self.email is None or self.password is None):
            raise ValueError("either token, or email and password, are required")
        return self


class ProfileConfig(BaseModel):
    """Profile configuration for an Orka cluster."""

    url: str
    verify_ssl: bool = True
    timeout: int = 30
    retries: int = 3
    auth: AuthConfig
