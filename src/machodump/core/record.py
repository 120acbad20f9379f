from dataclasses import dataclass
from typing import Any, Dict

from macholib.mach_o import LC_REQ_DYLD

from .constants import load_command_name
from .cursor import ByteCursor
from .errors import MalformedRecordError
from .header_decoder import BitWidth, MachHeader

LOAD_COMMAND_PREFIX_SIZE = 8


@dataclass(frozen=True)
class LoadCommand:
    """Общий префикс всех load-команд"""
    opcode: int
    byte_length: int
    offset: int  # смещение начала записи в файле

    @property
    def command_name(self) -> str:
        return load_command_name(self.opcode)

    @property
    def requires_dyld(self) -> bool:
        return bool(self.opcode & LC_REQ_DYLD)

    @property
    def end_offset(self) -> int:
        return self.offset + self.byte_length


class CommandReader:
    """Чтение полей одной load-команды в пределах её cmdsize

    Любое поле, которое пересекло бы границу offset + byte_length,
    считается ошибкой формата, а не поводом читать соседнюю запись.
    """

    def __init__(self, cursor: ByteCursor, header: MachHeader, opcode: int, byte_length: int, offset: int):
        self.cursor = cursor
        self.header = header
        self.opcode = opcode
        self.byte_length = byte_length
        self.offset = offset

    @property
    def end(self) -> int:
        return self.offset + self.byte_length

    @property
    def is_64_bit(self) -> bool:
        return self.header.bit_width is BitWidth.W64

    def remaining(self) -> int:
        return self.end - self.cursor.position()

    def common(self) -> Dict[str, Any]:
        """Поля префикса для конструктора записи"""
        return {"opcode": self.opcode, "byte_length": self.byte_length, "offset": self.offset}

    def _claim(self, size: int) -> None:
        if size > self.remaining():
            raise MalformedRecordError(
                f"{load_command_name(self.opcode)}: поле размером {size} байт "
                f"выходит за пределы cmdsize={self.byte_length}",
                self.offset,
            )

    def u32(self) -> int:
        self._claim(4)
        return self.cursor.read_u32(self.header.byte_order)

    def i32(self) -> int:
        self._claim(4)
        return self.cursor.read_i32(self.header.byte_order)

    def u64(self) -> int:
        self._claim(8)
        return self.cursor.read_u64(self.header.byte_order)

    def word(self) -> int:
        """Адрес или размер: 32 или 64 бита в зависимости от разрядности файла"""
        return self.u64() if self.is_64_bit else self.u32()

    def raw(self, count: int) -> bytes:
        self._claim(count)
        return self.cursor.read_exact(count)
