import typing as t

if t.TYPE_CHECKING:
    from ..cache import Cache


def copy_fields(obj: t.Any, data: t.Mapping[str, t.Any], fields: t.Iterable[str]) -> None:
    # Absent keys keep their current value.
    for key in fields:
        if key in data:
            setattr(obj, key, data[key])


class Hashable:
    __slots__ = ()

    id: int
    _cache: t.Optional["Cache"]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other.id == self.id

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return self.id >> 22
