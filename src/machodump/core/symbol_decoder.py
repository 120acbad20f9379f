from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from macholib.mach_o import (
    N_STAB, N_PEXT, N_TYPE, N_EXT, N_UNDF, N_ABS, N_SECT, N_PBUD, N_INDR,
)

from .cursor import ByteCursor
from .errors import TruncatedError
from .header_decoder import BitWidth, MachHeader
from .load_commands import SymtabCommand
from .record import LoadCommand

NLIST_SIZE = {BitWidth.W32: 12, BitWidth.W64: 16}


class SymbolType(Enum):
    """Типы символов"""
    UNDEFINED = "Undefined"
    ABSOLUTE = "Absolute"
    SECTION = "Section"
    PREBOUND = "Prebound"
    INDIRECT = "Indirect"
    DEBUG = "Debug"
    UNKNOWN = "Unknown"


_TYPE_BITS = {
    N_UNDF: SymbolType.UNDEFINED,
    N_ABS: SymbolType.ABSOLUTE,
    N_SECT: SymbolType.SECTION,
    N_PBUD: SymbolType.PREBOUND,
    N_INDR: SymbolType.INDIRECT,
}


@dataclass(frozen=True)
class Nlist:
    """Запись таблицы символов (nlist / nlist_64)"""
    string_index: int
    type: int
    section_index: int
    descriptor: int  # int16 в nlist, uint16 в nlist_64
    value: int
    name: bytes = b""

    @property
    def name_text(self) -> str:
        return self.name.decode("utf-8", errors="replace")

    @property
    def symbol_type(self) -> SymbolType:
        if self.type & N_STAB:
            return SymbolType.DEBUG
        return _TYPE_BITS.get(self.type & N_TYPE, SymbolType.UNKNOWN)

    @property
    def is_external(self) -> bool:
        return bool(self.type & N_EXT)

    @property
    def is_private_external(self) -> bool:
        return bool(self.type & N_PEXT)


def find_symtab(commands: Iterable[LoadCommand]) -> Optional[SymtabCommand]:
    """Первая команда LC_SYMTAB среди уже разобранных"""
    for command in commands:
        if isinstance(command, SymtabCommand):
            return command
    return None


def _read_nlist(cursor: ByteCursor, header: MachHeader) -> Tuple[int, int, int, int, int]:
    order = header.byte_order
    string_index = cursor.read_u32(order)
    n_type = cursor.read_u8(order)
    section_index = cursor.read_u8(order)
    if header.bit_width is BitWidth.W64:
        descriptor = cursor.read_u16(order)
        value = cursor.read_u64(order)
    else:
        descriptor = cursor.read_i16(order)
        value = cursor.read_u32(order)
    return string_index, n_type, section_index, descriptor, value


def _string_at(strings: bytes, index: int) -> bytes:
    if index == 0 or index >= len(strings):
        return b""
    end = strings.find(b"\0", index)
    return strings[index:] if end < 0 else strings[index:end]


def read_string_table(cursor: ByteCursor, symtab: SymtabCommand) -> bytes:
    """Таблица строк; пустая, если она не помещается в файл"""
    if symtab.strsize == 0 or symtab.stroff + symtab.strsize > cursor.size:
        return b""
    cursor.seek(symtab.stroff)
    return cursor.read_exact(symtab.strsize)


def decode_symbols(cursor: ByteCursor, header: MachHeader, commands: Iterable[LoadCommand]) -> Tuple[Nlist, ...]:
    """Прочитать таблицу символов, на которую указывает LC_SYMTAB

    Записи читаются с symoff. Файл без LC_SYMTAB даёт пустую таблицу.
    Если таблица строк выходит за конец файла, имена остаются пустыми.
    """
    symtab = find_symtab(commands)
    if symtab is None or symtab.nsyms == 0:
        return ()

    table_size = symtab.nsyms * NLIST_SIZE[header.bit_width]
    available = max(cursor.size - symtab.symoff, 0)
    if table_size > available:
        raise TruncatedError(symtab.symoff, table_size, available)

    cursor.seek(symtab.symoff)
    records = [_read_nlist(cursor, header) for _ in range(symtab.nsyms)]
    strings = read_string_table(cursor, symtab)

    return tuple(
        Nlist(string_index, n_type, section_index, descriptor, value,
              name=_string_at(strings, string_index))
        for string_index, n_type, section_index, descriptor, value in records
    )
