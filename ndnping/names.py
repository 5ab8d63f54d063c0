"""
Имена пакетов (Interest и Data).

Имя - это последовательность компонентов (байтовых строк). В командной
строке имя задается URI вида `ccnx:/name/prefix` или `ndn:/name/prefix`
(схема необязательна). Компоненты в URI экранируются процентами,
компонент из одних точек записывается с тремя дополнительными точками
(`...` - пустой компонент).
"""
import re
from typing import Iterable, Iterator


URI_SCHEMES = ("ccnx", "ndn")

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
)


class InvalidNameError(ValueError):
    """URI не может быть разобран как имя."""
    ...


def _decode_component(text: str) -> bytes | None:
    """
    Разобрать один компонент URI. Для "." возвращает None (компонент
    пропускается), ".." запрещен: относительные имена не поддерживаются.
    """
    if _BAD_ESCAPE.search(text):
        raise InvalidNameError(f"bad percent escape in component {text!r}")
    value = bytearray()
    i = 0
    while i < len(text):
        if text[i] == '%':
            value.append(int(text[i + 1:i + 3], 16))
            i += 3
        else:
            value.extend(text[i].encode('utf-8'))
            i += 1
    if value and all(b == ord('.') for b in value):
        if len(value) == 1:
            return None
        if len(value) == 2:
            raise InvalidNameError("'..' is not allowed in a name")
        return bytes(value[3:])
    return bytes(value)


def _encode_component(component: bytes) -> str:
    if all(b == ord('.') for b in component):
        return "..." + "." * len(component)
    return "".join(
        chr(b) if b in _UNRESERVED else f"%{b:02X}" for b in component
    )


class Name:
    """Неизменяемое имя, хешируемое (используется как ключ словаря)."""

    __slots__ = ("_components",)

    def __init__(self, components: Iterable[bytes | str] = ()):
        comps = []
        for component in components:
            if isinstance(component, str):
                component = component.encode('utf-8')
            comps.append(bytes(component))
        self._components: tuple[bytes, ...] = tuple(comps)

    @classmethod
    def from_uri(cls, uri: str) -> "Name":
        """
        Разобрать URI.

        Raises:
            InvalidNameError: если URI некорректен (нет ведущего '/',
                неизвестная схема, плохое экранирование, '..')
        """
        text = uri.strip()
        scheme, sep, rest = text.partition(':')
        if sep and '/' not in scheme:
            if scheme.lower() not in URI_SCHEMES:
                raise InvalidNameError(f"unknown URI scheme {scheme!r}")
            text = rest
        for stop in ('?', '#'):
            text = text.split(stop, 1)[0]
        if not text.startswith('/'):
            raise InvalidNameError(f"name must be absolute: {uri!r}")
        if text.startswith('//'):
            # ccnx://authority/path - authority игнорируется
            text = '/' + text[2:].partition('/')[2]

        components = []
        for part in text.split('/'):
            if not part:
                continue
            component = _decode_component(part)
            if component is not None:
                components.append(component)
        return cls(components)

    @property
    def components(self) -> tuple[bytes, ...]:
        return self._components

    def append(self, component: bytes | str) -> "Name":
        """Вернуть новое имя с добавленным в конец компонентом."""
        return Name(self._components + (component if isinstance(
            component, bytes) else component.encode('utf-8'),))

    def is_prefix_of(self, other: "Name") -> bool:
        n = len(self._components)
        return n <= len(other) and other.components[:n] == self._components

    def to_uri(self, scheme: str = "") -> str:
        path = "/" + "/".join(_encode_component(c) for c in self._components)
        return f"{scheme}:{path}" if scheme else path

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._components)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return Name(self._components[item])
        return self._components[item]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Name):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)

    def __str__(self) -> str:
        return self.to_uri()

    def __repr__(self) -> str:
        return f"Name({self.to_uri()!r})"
