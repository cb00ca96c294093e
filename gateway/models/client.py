"""API client model."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gateway.models.base import BaseModel


class Client(BaseModel):
    """A caller allowed to obtain tokens via the client credentials grant.

    Only the argon2 hash of the secret is stored. Clients are provisioned by
    the scripts in ``scripts/`` and afterwards only their active flag changes.
    """

    __tablename__ = "clients"

    client_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    client_secret_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Client {self.client_id}>"
