"""
Connection profile: where to connect and with which credentials.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mssqlhop.domain.errors import MissingRequiredArgumentError
from mssqlhop.domain.server import Server


class AuthType(Enum):
    """Credential types understood by the ODBC channel."""

    LOCAL = "local"  # SQL Server login
    WINDOWS = "windows"  # integrated / Kerberos through the driver
    ENTRAID = "entraid"  # ActiveDirectoryPassword
    TOKEN = "token"  # pre-acquired Entra ID access token

    @property
    def required_arguments(self) -> tuple[str, ...]:
        return _REQUIRED_ARGUMENTS[self]


_REQUIRED_ARGUMENTS = {
    AuthType.LOCAL: ("username", "password"),
    AuthType.WINDOWS: (),
    AuthType.ENTRAID: ("username", "password"),
    AuthType.TOKEN: ("access_token",),
}


class ConnectionProfile(BaseModel):
    """Direct connection target plus credentials."""

    model_config = ConfigDict(frozen=True)

    server: str = Field(..., description="Hostname, HOST\\INSTANCE or IP address")
    port: Optional[int] = Field(None, description="TCP port, driver default when unset")
    auth_type: AuthType = AuthType.LOCAL
    username: Optional[str] = None
    password: Optional[str] = Field(None, repr=False)
    domain: Optional[str] = None
    access_token: Optional[str] = Field(None, repr=False)
    database: Optional[str] = Field(None, description="Initial database")
    impersonate: Optional[str] = Field(None, description="Login to impersonate after connecting")
    connect_timeout: int = 15
    encrypt: bool = False
    trust_server_certificate: bool = True
    odbc_driver: Optional[str] = None

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Server cannot be empty")
        return v.strip()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    def validate_credentials(self) -> None:
        """
        Raises:
            MissingRequiredArgumentError: If the credential type lacks an argument
        """
        missing = [
            name for name in self.auth_type.required_arguments
            if not getattr(self, name)
        ]
        if missing:
            raise MissingRequiredArgumentError(
                f"Credential type '{self.auth_type.value}' requires: {', '.join(missing)}"
            )

    @property
    def login(self) -> str | None:
        """Login name as sent to the server (``DOMAIN\\user`` when a domain is set)."""
        if self.username and self.domain and self.auth_type is AuthType.LOCAL:
            return f"{self.domain}\\{self.username}"
        return self.username

    @property
    def server_address(self) -> str:
        """``SERVER=`` value for the ODBC connection string."""
        if self.port:
            return f"{self.server},{self.port}"
        return self.server

    def to_server(self) -> Server:
        """Descriptor for the directly connected host."""
        return Server(
            hostname=self.server.split("\\")[0],
            port=self.port,
            impersonation_principal=self.impersonate,
            database=self.database,
        )

    @classmethod
    def from_host_argument(cls, host: str, **kwargs) -> ConnectionProfile:
        """
        Build a profile from ``name[:port][/principal][@database]``.

        Explicit keyword arguments win over values parsed from ``host``.
        """
        server = Server.parse(host)
        values = {
            "server": server.hostname,
            "port": server.port,
            "impersonate": server.impersonation_principal,
            "database": server.database,
        }
        values.update({key: value for key, value in kwargs.items() if value is not None})
        return cls(**values)
