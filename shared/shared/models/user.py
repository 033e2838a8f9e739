from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import Role


class CurrentUser(BaseModel):
    """User context from JWT; used by all services."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    email: str
    name: str = ""
    roles: list[Role] = Field(default_factory=list)

    @property
    def highest_role(self) -> Role:
        return max(self.roles, default=Role.STUDENT)

    def has_role(self, minimum: Role) -> bool:
        return self.highest_role.at_least(minimum)

    @property
    def display_name(self) -> str:
        return self.name or self.email
