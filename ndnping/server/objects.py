from pydantic import BaseModel, Field


class ServerReport(BaseModel):
    """Итог работы сервера."""
    prefix: str = Field(..., description="Префикс, под которым отвечал сервер")
    responded: int = Field(..., description="Сколько Interest-ов обслужено")
    ignored: int = Field(0, description="Сколько Interest-ов отброшено")
    failures: int = Field(0, description="Сколько ответов не удалось отправить")
