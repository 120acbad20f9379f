import io
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple, Type, TypeVar, Union

from .cursor import ByteCursor
from .header_decoder import MachHeader, decode_header
from .load_commands import DylibCommand, SymtabCommand, UuidCommand, decode_load_commands
from .record import LoadCommand
from .segment_decoder import SegmentCommand
from .symbol_decoder import Nlist, decode_symbols, find_symtab

T = TypeVar("T", bound=LoadCommand)


@dataclass(frozen=True)
class MachODocument:
    """Результат разбора Mach-O файла

    Не хранит ссылок на исходный файл: после разбора его можно закрыть.
    """
    header: MachHeader
    load_commands: Tuple[LoadCommand, ...]
    symbols: Tuple[Nlist, ...]

    def commands_of(self, kind: Type[T]) -> List[T]:
        """Все load-команды заданного типа в порядке следования"""
        return [command for command in self.load_commands if isinstance(command, kind)]

    @property
    def segments(self) -> List[SegmentCommand]:
        return self.commands_of(SegmentCommand)

    @property
    def dylibs(self) -> List[DylibCommand]:
        return self.commands_of(DylibCommand)

    @property
    def symtab(self) -> Optional[SymtabCommand]:
        return find_symtab(self.load_commands)

    @property
    def uuid(self) -> Optional[str]:
        uuids = self.commands_of(UuidCommand)
        return uuids[0].uuid_string if uuids else None


Source = Union[str, os.PathLike, bytes, bytearray, memoryview, io.IOBase]


def decode_cursor(cursor: ByteCursor) -> MachODocument:
    """Разобрать Mach-O с начала источника"""
    cursor.seek(0)
    header = decode_header(cursor)
    load_commands = decode_load_commands(cursor, header)
    symbols = decode_symbols(cursor, header, load_commands)
    return MachODocument(header=header, load_commands=load_commands, symbols=symbols)


def decode(source: Source) -> MachODocument:
    """Разобрать Mach-O по пути к файлу, из буфера в памяти или из открытого бинарного потока

    Поток должен поддерживать seek; закрывать его - забота вызывающего кода.
    """
    if isinstance(source, (str, os.PathLike)):
        return decode_file(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        cursor = ByteCursor.from_bytes(source)
    else:
        cursor = ByteCursor(source)
    return decode_cursor(cursor)


def decode_file(path: Union[str, os.PathLike]) -> MachODocument:
    """Открыть файл, разобрать его и закрыть"""
    with open(path, "rb") as stream:
        return decode(stream)
