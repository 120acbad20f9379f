from dataclasses import dataclass
from typing import Optional, Tuple

from .record import CommandReader, LoadCommand
from .trailing_string import decode_cstring

SEGMENT_NAME_SIZE = 16


@dataclass(frozen=True)
class Section:
    """Секция сегмента"""
    sectname: bytes
    segname: bytes
    address: int
    size: int
    file_offset: int
    alignment: int
    relocation_offset: int
    relocation_count: int
    flags: int
    reserved1: int
    reserved2: int
    reserved3: Optional[int]  # только в section_64

    @property
    def name(self) -> str:
        return decode_cstring(self.sectname)

    @property
    def segment_name(self) -> str:
        return decode_cstring(self.segname)


@dataclass(frozen=True)
class SegmentCommand(LoadCommand):
    """LC_SEGMENT / LC_SEGMENT_64 вместе с секциями"""
    segname: bytes
    vmaddr: int
    vmsize: int
    fileoff: int
    filesize: int
    maxprot: int
    initprot: int
    nsects: int
    flags: int
    sections: Tuple[Section, ...]

    @property
    def segment_name(self) -> str:
        return decode_cstring(self.segname)


def decode_section(reader: CommandReader) -> Section:
    sectname = reader.raw(SEGMENT_NAME_SIZE)
    segname = reader.raw(SEGMENT_NAME_SIZE)
    address = reader.word()
    size = reader.word()
    file_offset = reader.u32()
    alignment = reader.u32()
    relocation_offset = reader.u32()
    relocation_count = reader.u32()
    flags = reader.u32()
    reserved1 = reader.u32()
    reserved2 = reader.u32()
    reserved3 = reader.u32() if reader.is_64_bit else None
    return Section(
        sectname=sectname,
        segname=segname,
        address=address,
        size=size,
        file_offset=file_offset,
        alignment=alignment,
        relocation_offset=relocation_offset,
        relocation_count=relocation_count,
        flags=flags,
        reserved1=reserved1,
        reserved2=reserved2,
        reserved3=reserved3,
    )


def decode_sections(reader: CommandReader, count: int) -> Tuple[Section, ...]:
    """Прочитать ровно count секций подряд; длина массива нигде не записана"""
    return tuple(decode_section(reader) for _ in range(count))


def decode_segment_command(reader: CommandReader) -> SegmentCommand:
    segname = reader.raw(SEGMENT_NAME_SIZE)
    vmaddr = reader.word()
    vmsize = reader.word()
    fileoff = reader.word()
    filesize = reader.word()
    maxprot = reader.i32()
    initprot = reader.i32()
    nsects = reader.u32()
    flags = reader.u32()
    return SegmentCommand(
        **reader.common(),
        segname=segname,
        vmaddr=vmaddr,
        vmsize=vmsize,
        fileoff=fileoff,
        filesize=filesize,
        maxprot=maxprot,
        initprot=initprot,
        nsects=nsects,
        flags=flags,
        sections=decode_sections(reader, nsects),
    )
