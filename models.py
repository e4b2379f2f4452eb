from dataclasses import dataclass
from typing import Union

# Arena slot of the master header in every matrix.
SENTINEL = 0


class InvalidElementError(ValueError):
    """A handle that does not belong to, or does not fit, the target matrix."""


class MatrixBusyError(RuntimeError):
    """The matrix is being searched and cannot be modified or re-entered."""


@dataclass
class ColumnHeader:
    name: str
    size: int = 0


@dataclass(frozen=True)
class RowItem:
    pass


ROW_ITEM = RowItem()

Payload = Union[ColumnHeader, RowItem]


@dataclass
class Element:
    """One arena slot of the toroidal mesh.

    ``up``, ``down``, ``left``, ``right`` and ``column`` are indices into the
    owning matrix's arena.  Headers carry a :class:`ColumnHeader`, row items
    carry :data:`ROW_ITEM`.
    """

    up: int
    down: int
    left: int
    right: int
    column: int
    payload: Payload

    @property
    def is_header(self) -> bool:
        return isinstance(self.payload, ColumnHeader)


@dataclass(frozen=True)
class ElementRef:
    owner: int
    index: int
