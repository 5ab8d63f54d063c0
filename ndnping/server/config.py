from pydantic import BaseModel, Field, field_validator

from ndnping.client.config import PING_COMPONENT
from ndnping.names import Name


DEFAULT_FRESHNESS = 1  # секунды


class ServerConfig(BaseModel):
    """
    Входные параметры сервера
    """
    prefix: str = Field(
        ..., description="Префикс имени, под которым отвечает сервер"
    )
    freshness: int | None = Field(
        DEFAULT_FRESHNESS, gt=0,
        description="Срок свежести ответа, секунды (None - без подсказки)"
    )
    daemon: bool = Field(False, description="Работать в режиме демона")

    @field_validator("prefix")
    @classmethod
    def check_prefix(cls, value: str) -> str:
        Name.from_uri(value)
        return value

    def ping_prefix(self) -> Name:
        """Префикс, под которым регистрируется сервер: <prefix>/ping."""
        return Name.from_uri(self.prefix).append(PING_COMPONENT)
