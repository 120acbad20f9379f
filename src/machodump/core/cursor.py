import io
import os
import struct
from enum import Enum
from typing import BinaryIO, Dict, Tuple

from .errors import SeekOutOfRangeError, TruncatedError


class ByteOrder(Enum):
    """Порядок байт, префикс формата struct"""
    BIG = ">"
    LITTLE = "<"


_STRUCTS: Dict[Tuple[ByteOrder, str], struct.Struct] = {
    (order, code): struct.Struct(order.value + code)
    for order in ByteOrder
    for code in "BHIQhiq"
}


class ByteCursor:
    """Позиционируемый источник байт поверх файла или буфера в памяти

    Курсор не владеет потоком: открывает и закрывает его вызывающий код.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        current = stream.tell()
        self._size = stream.seek(0, os.SEEK_END)
        stream.seek(current)

    @classmethod
    def from_bytes(cls, data) -> "ByteCursor":
        return cls(io.BytesIO(bytes(data)))

    @property
    def size(self) -> int:
        return self._size

    def position(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > self._size:
            raise SeekOutOfRangeError(offset, self._size)
        self.stream.seek(offset)

    def read_exact(self, count: int) -> bytes:
        offset = self.position()
        available = max(self._size - offset, 0)
        if count > available:
            raise TruncatedError(offset, count, available)
        data = self.stream.read(count)
        if len(data) != count:
            raise TruncatedError(offset, count, len(data))
        return data

    def _unpack(self, code: str, order: ByteOrder) -> int:
        fmt = _STRUCTS[(order, code)]
        return fmt.unpack(self.read_exact(fmt.size))[0]

    def read_u8(self, order: ByteOrder = ByteOrder.BIG) -> int:
        return self._unpack("B", order)

    def read_u16(self, order: ByteOrder) -> int:
        return self._unpack("H", order)

    def read_u32(self, order: ByteOrder) -> int:
        return self._unpack("I", order)

    def read_u64(self, order: ByteOrder) -> int:
        return self._unpack("Q", order)

    def read_i16(self, order: ByteOrder) -> int:
        return self._unpack("h", order)

    def read_i32(self, order: ByteOrder) -> int:
        return self._unpack("i", order)

    def read_i64(self, order: ByteOrder) -> int:
        return self._unpack("q", order)
