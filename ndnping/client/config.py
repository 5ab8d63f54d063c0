from pydantic import BaseModel, Field, field_validator

from ndnping.names import Name
from ndnping.transport.base import DEFAULT_INTEREST_LIFETIME


PING_COMPONENT = "ping"
PING_MIN_INTERVAL = 0.1  # секунды
DEFAULT_INTERVAL = 1.0


class PingConfig(BaseModel):
    """
    Входные параметры клиента
    """
    prefix: str = Field(
        ..., description="Префикс имени в том виде, как его задал оператор"
    )
    interval: float = Field(
        DEFAULT_INTERVAL, ge=PING_MIN_INTERVAL,
        description="Интервал между отправками проб, секунды"
    )
    total: int | None = Field(
        None, gt=0,
        description="Сколько проб отправить, None - без ограничения"
    )
    start_number: int | None = Field(
        None, ge=0,
        description="Номер первой пробы (далее +1), None - случайные номера"
    )
    identifier: str | None = Field(
        None, pattern=r"^[A-Za-z]+$",
        description="Идентификатор, добавляемый в имя перед номером"
    )
    allow_cache: bool = Field(
        False, description="Разрешить маршрутизаторам отвечать из кеша"
    )
    print_timestamp: bool = Field(
        False, description="Печатать время перед каждой строкой лога"
    )
    lifetime: float = Field(
        DEFAULT_INTEREST_LIFETIME, gt=0,
        description="Время жизни Interest, секунды"
    )

    @field_validator("prefix")
    @classmethod
    def check_prefix(cls, value: str) -> str:
        Name.from_uri(value)  # InvalidNameError - подкласс ValueError
        return value

    @property
    def random_numbering(self) -> bool:
        return self.start_number is None

    def target_prefix(self) -> Name:
        """Префикс проб: <prefix>/ping[/<identifier>]."""
        name = Name.from_uri(self.prefix).append(PING_COMPONENT)
        if self.identifier:
            name = name.append(self.identifier)
        return name
