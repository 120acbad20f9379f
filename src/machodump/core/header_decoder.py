from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from macholib.mach_o import MH_MAGIC, MH_CIGAM, MH_MAGIC_64, MH_CIGAM_64

from .cursor import ByteCursor, ByteOrder
from .errors import InvalidMagicError


class BitWidth(Enum):
    """Разрядность Mach-O файла"""
    W32 = 32
    W64 = 64


MAGIC_LAYOUTS = {
    MH_MAGIC: (ByteOrder.BIG, BitWidth.W32),
    MH_CIGAM: (ByteOrder.LITTLE, BitWidth.W32),
    MH_MAGIC_64: (ByteOrder.BIG, BitWidth.W64),
    MH_CIGAM_64: (ByteOrder.LITTLE, BitWidth.W64),
}

MAGIC_NAMES = {
    MH_MAGIC: "MH_MAGIC",
    MH_CIGAM: "MH_CIGAM",
    MH_MAGIC_64: "MH_MAGIC_64",
    MH_CIGAM_64: "MH_CIGAM_64",
}


@dataclass(frozen=True)
class MachHeader:
    """Заголовок Mach-O файла"""
    magic: int
    cputype: int
    cpusubtype: int
    filetype: int
    ncmds: int
    sizeofcmds: int
    flags: int
    reserved: Optional[int]  # только для 64-битных файлов
    byte_order: ByteOrder
    bit_width: BitWidth

    @property
    def is_64_bit(self) -> bool:
        return self.bit_width is BitWidth.W64

    @property
    def size(self) -> int:
        """Размер заголовка в байтах"""
        return 32 if self.is_64_bit else 28


def classify_magic(value: int) -> Tuple[ByteOrder, BitWidth]:
    """Определить порядок байт и разрядность по magic number"""
    try:
        return MAGIC_LAYOUTS[value]
    except KeyError:
        raise InvalidMagicError(value) from None


def decode_header(cursor: ByteCursor) -> MachHeader:
    """Прочитать заголовок с текущей позиции курсора

    Magic всегда читается как big-endian: его значение само кодирует
    порядок байт остального файла.
    """
    magic = cursor.read_u32(ByteOrder.BIG)
    order, width = classify_magic(magic)

    cputype = cursor.read_i32(order)
    cpusubtype = cursor.read_i32(order)
    filetype = cursor.read_u32(order)
    ncmds = cursor.read_u32(order)
    sizeofcmds = cursor.read_u32(order)
    flags = cursor.read_u32(order)
    reserved = cursor.read_u32(order) if width is BitWidth.W64 else None

    return MachHeader(
        magic=magic,
        cputype=cputype,
        cpusubtype=cpusubtype,
        filetype=filetype,
        ncmds=ncmds,
        sizeofcmds=sizeofcmds,
        flags=flags,
        reserved=reserved,
        byte_order=order,
        bit_width=width,
    )
