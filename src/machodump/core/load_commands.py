from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union
from uuid import UUID

from macholib.mach_o import (
    LC_REQ_DYLD, LC_SEGMENT, LC_SYMTAB, LC_SYMSEG, LC_THREAD, LC_UNIXTHREAD,
    LC_LOADFVMLIB, LC_IDFVMLIB, LC_IDENT, LC_FVMFILE, LC_PREPAGE, LC_DYSYMTAB,
    LC_LOAD_DYLIB, LC_ID_DYLIB, LC_LOAD_DYLINKER, LC_ID_DYLINKER,
    LC_PREBOUND_DYLIB, LC_ROUTINES, LC_SUB_FRAMEWORK, LC_SUB_UMBRELLA,
    LC_SUB_CLIENT, LC_SUB_LIBRARY, LC_TWOLEVEL_HINTS, LC_PREBIND_CKSUM,
    LC_LOAD_WEAK_DYLIB, LC_SEGMENT_64, LC_ROUTINES_64, LC_UUID, LC_RPATH,
    LC_CODE_SIGNATURE, LC_CODE_SEGMENT_SPLIT_INFO, LC_REEXPORT_DYLIB,
    LC_LAZY_LOAD_DYLIB, LC_ENCRYPTION_INFO, LC_DYLD_INFO, LC_DYLD_INFO_ONLY,
    LC_LOAD_UPWARD_DYLIB, LC_VERSION_MIN_MACOSX, LC_VERSION_MIN_IPHONEOS,
    LC_FUNCTION_STARTS, LC_DYLD_ENVIRONMENT, LC_MAIN, LC_DATA_IN_CODE,
    LC_SOURCE_VERSION, LC_DYLIB_CODE_SIGN_DRS, LC_ENCRYPTION_INFO_64,
    LC_LINKER_OPTION, LC_LINKER_OPTIMIZATION_HINT, LC_VERSION_MIN_TVOS,
    LC_VERSION_MIN_WATCHOS, LC_NOTE, LC_BUILD_VERSION, LC_DYLD_EXPORTS_TRIE,
    LC_DYLD_CHAINED_FIXUPS,
)

from .constants import LC_ATOM_INFO, format_version
from .cursor import ByteCursor
from .errors import MalformedRecordError, UnknownLoadCommandError
from .header_decoder import MachHeader
from .record import LOAD_COMMAND_PREFIX_SIZE, CommandReader, LoadCommand
from .segment_decoder import SegmentCommand, decode_segment_command
from .trailing_string import decode_cstring, extract_trailing_string

BUILD_TOOL_VERSION_SIZE = 8


# --- Команды с одной хвостовой строкой ---

@dataclass(frozen=True)
class StringCommand(LoadCommand):
    """Команда с одним полем lc_str и строкой после фиксированных полей"""
    string_offset: int
    string: bytes

    @property
    def text(self) -> str:
        return decode_cstring(self.string)


class DylinkerCommand(StringCommand):
    """LC_LOAD_DYLINKER / LC_ID_DYLINKER / LC_DYLD_ENVIRONMENT"""


class SubFrameworkCommand(StringCommand):
    pass


class SubUmbrellaCommand(StringCommand):
    pass


class SubClientCommand(StringCommand):
    pass


class SubLibraryCommand(StringCommand):
    pass


class RpathCommand(StringCommand):
    pass


@dataclass(frozen=True)
class DylibCommand(LoadCommand):
    """Описание динамической библиотеки: имя, время сборки и версии"""
    name_offset: int
    timestamp: int
    current_version: int
    compatibility_version: int
    name: bytes

    @property
    def path(self) -> str:
        return decode_cstring(self.name)

    @property
    def current_version_text(self) -> str:
        return format_version(self.current_version)

    @property
    def compatibility_version_text(self) -> str:
        return format_version(self.compatibility_version)


@dataclass(frozen=True)
class FvmlibCommand(LoadCommand):
    """LC_LOADFVMLIB / LC_IDFVMLIB"""
    name_offset: int
    minor_version: int
    header_addr: int
    name: bytes

    @property
    def path(self) -> str:
        return decode_cstring(self.name)


@dataclass(frozen=True)
class FvmfileCommand(LoadCommand):
    name_offset: int
    header_addr: int
    name: bytes

    @property
    def path(self) -> str:
        return decode_cstring(self.name)


@dataclass(frozen=True)
class PreboundDylibCommand(LoadCommand):
    """LC_PREBOUND_DYLIB

    В записи две строки (имя и битовый вектор модулей), но граница между
    ними не разбирается: всё после фиксированных полей хранится целиком.
    """
    name_offset: int
    nmodules: int
    linked_modules_offset: int
    trailing: bytes


# --- Команды только с префиксом ---

class ThreadCommand(LoadCommand):
    """LC_THREAD / LC_UNIXTHREAD, состояние регистров не разбирается"""


class IdentCommand(LoadCommand):
    pass


class PrepageCommand(LoadCommand):
    pass


# --- Команды с фиксированным набором полей ---

@dataclass(frozen=True)
class SymtabCommand(LoadCommand):
    symoff: int
    nsyms: int
    stroff: int
    strsize: int


@dataclass(frozen=True)
class DysymtabCommand(LoadCommand):
    ilocalsym: int
    nlocalsym: int
    iextdefsym: int
    nextdefsym: int
    iundefsym: int
    nundefsym: int
    tocoff: int
    ntoc: int
    modtaboff: int
    nmodtab: int
    extrefsymoff: int
    nextrefsyms: int
    indirectsymoff: int
    nindirectsyms: int
    extreloff: int
    nextrel: int
    locreloff: int
    nlocrel: int


@dataclass(frozen=True)
class RoutinesCommand(LoadCommand):
    init_address: int
    init_module: int
    reserved: Tuple[int, ...]


@dataclass(frozen=True)
class TwoLevelHintsCommand(LoadCommand):
    hints_offset: int
    nhints: int


@dataclass(frozen=True)
class PrebindChecksumCommand(LoadCommand):
    cksum: int


@dataclass(frozen=True)
class UuidCommand(LoadCommand):
    uuid: bytes

    @property
    def uuid_string(self) -> str:
        return str(UUID(bytes=self.uuid)).upper()


@dataclass(frozen=True)
class LinkeditDataCommand(LoadCommand):
    """Ссылка на область __LINKEDIT (подпись, function starts, fixups и т.п.)"""
    dataoff: int
    datasize: int


@dataclass(frozen=True)
class EncryptionInfoCommand(LoadCommand):
    cryptoff: int
    cryptsize: int
    cryptid: int
    pad: Optional[int]  # только в encryption_info_command_64


@dataclass(frozen=True)
class VersionMinCommand(LoadCommand):
    version: int
    sdk: int


@dataclass(frozen=True)
class BuildToolVersion:
    tool: int
    version: int


@dataclass(frozen=True)
class BuildVersionCommand(LoadCommand):
    platform: int
    minos: int
    sdk: int
    ntools: int
    tools: Tuple[BuildToolVersion, ...]


@dataclass(frozen=True)
class DyldInfoCommand(LoadCommand):
    rebase_off: int
    rebase_size: int
    bind_off: int
    bind_size: int
    weak_bind_off: int
    weak_bind_size: int
    lazy_bind_off: int
    lazy_bind_size: int
    export_off: int
    export_size: int


@dataclass(frozen=True)
class LinkerOptionCommand(LoadCommand):
    count: int


@dataclass(frozen=True)
class SymsegCommand(LoadCommand):
    symseg_offset: int
    size: int


@dataclass(frozen=True)
class EntryPointCommand(LoadCommand):
    entryoff: int
    stacksize: int


@dataclass(frozen=True)
class SourceVersionCommand(LoadCommand):
    version: int


@dataclass(frozen=True)
class NoteCommand(LoadCommand):
    data_owner: bytes
    note_offset: int
    size: int

    @property
    def owner(self) -> str:
        return decode_cstring(self.data_owner)


LoadCommandRecord = Union[
    SegmentCommand, DylinkerCommand, SubFrameworkCommand, SubUmbrellaCommand,
    SubClientCommand, SubLibraryCommand, RpathCommand, DylibCommand,
    FvmlibCommand, FvmfileCommand, PreboundDylibCommand, ThreadCommand,
    IdentCommand, PrepageCommand, SymtabCommand, DysymtabCommand,
    RoutinesCommand, TwoLevelHintsCommand, PrebindChecksumCommand, UuidCommand,
    LinkeditDataCommand, EncryptionInfoCommand, VersionMinCommand,
    BuildVersionCommand, DyldInfoCommand, LinkerOptionCommand, SymsegCommand,
    EntryPointCommand, SourceVersionCommand, NoteCommand,
]

Decoder = Callable[[CommandReader], LoadCommand]


# --- Декодеры ---

def _string_decoder(cls) -> Decoder:
    def decode(reader: CommandReader) -> StringCommand:
        string_offset = reader.u32()
        return cls(**reader.common(), string_offset=string_offset,
                   string=extract_trailing_string(reader))
    return decode


def _prefix_decoder(cls) -> Decoder:
    def decode(reader: CommandReader) -> LoadCommand:
        return cls(**reader.common())
    return decode


def _decode_dylib(reader: CommandReader) -> DylibCommand:
    name_offset = reader.u32()
    timestamp = reader.u32()
    current_version = reader.u32()
    compatibility_version = reader.u32()
    return DylibCommand(
        **reader.common(),
        name_offset=name_offset,
        timestamp=timestamp,
        current_version=current_version,
        compatibility_version=compatibility_version,
        name=extract_trailing_string(reader),
    )


def _decode_fvmlib(reader: CommandReader) -> FvmlibCommand:
    name_offset = reader.u32()
    minor_version = reader.u32()
    header_addr = reader.u32()
    return FvmlibCommand(**reader.common(), name_offset=name_offset, minor_version=minor_version,
                         header_addr=header_addr, name=extract_trailing_string(reader))


def _decode_fvmfile(reader: CommandReader) -> FvmfileCommand:
    name_offset = reader.u32()
    header_addr = reader.u32()
    return FvmfileCommand(**reader.common(), name_offset=name_offset, header_addr=header_addr,
                          name=extract_trailing_string(reader))


def _decode_prebound_dylib(reader: CommandReader) -> PreboundDylibCommand:
    name_offset = reader.u32()
    nmodules = reader.u32()
    linked_modules_offset = reader.u32()
    return PreboundDylibCommand(
        **reader.common(),
        name_offset=name_offset,
        nmodules=nmodules,
        linked_modules_offset=linked_modules_offset,
        trailing=extract_trailing_string(reader),
    )


def _decode_symtab(reader: CommandReader) -> SymtabCommand:
    symoff = reader.u32()
    nsyms = reader.u32()
    stroff = reader.u32()
    strsize = reader.u32()
    return SymtabCommand(**reader.common(), symoff=symoff, nsyms=nsyms, stroff=stroff, strsize=strsize)


def _decode_dysymtab(reader: CommandReader) -> DysymtabCommand:
    # 18 полей uint32 в порядке объявления в loader.h
    fields = [reader.u32() for _ in range(18)]
    return DysymtabCommand(reader.opcode, reader.byte_length, reader.offset, *fields)


def _decode_routines(reader: CommandReader) -> RoutinesCommand:
    init_address = reader.word()
    init_module = reader.word()
    reserved = tuple(reader.word() for _ in range(6))
    return RoutinesCommand(**reader.common(), init_address=init_address, init_module=init_module,
                           reserved=reserved)


def _decode_twolevel_hints(reader: CommandReader) -> TwoLevelHintsCommand:
    hints_offset = reader.u32()
    nhints = reader.u32()
    return TwoLevelHintsCommand(**reader.common(), hints_offset=hints_offset, nhints=nhints)


def _decode_prebind_cksum(reader: CommandReader) -> PrebindChecksumCommand:
    return PrebindChecksumCommand(**reader.common(), cksum=reader.u32())


def _decode_uuid(reader: CommandReader) -> UuidCommand:
    return UuidCommand(**reader.common(), uuid=reader.raw(16))


def _decode_linkedit_data(reader: CommandReader) -> LinkeditDataCommand:
    dataoff = reader.u32()
    datasize = reader.u32()
    return LinkeditDataCommand(**reader.common(), dataoff=dataoff, datasize=datasize)


def _decode_encryption_info(reader: CommandReader) -> EncryptionInfoCommand:
    cryptoff = reader.u32()
    cryptsize = reader.u32()
    cryptid = reader.u32()
    pad = reader.u32() if reader.is_64_bit else None
    return EncryptionInfoCommand(**reader.common(), cryptoff=cryptoff, cryptsize=cryptsize,
                                 cryptid=cryptid, pad=pad)


def _decode_version_min(reader: CommandReader) -> VersionMinCommand:
    version = reader.u32()
    sdk = reader.u32()
    return VersionMinCommand(**reader.common(), version=version, sdk=sdk)


def _decode_build_version(reader: CommandReader) -> BuildVersionCommand:
    platform = reader.u32()
    minos = reader.u32()
    sdk = reader.u32()
    ntools = reader.u32()
    if ntools * BUILD_TOOL_VERSION_SIZE > reader.remaining():
        raise MalformedRecordError(
            f"LC_BUILD_VERSION: ntools={ntools} не помещается в cmdsize={reader.byte_length}",
            reader.offset,
        )
    tools = tuple(BuildToolVersion(tool=reader.u32(), version=reader.u32()) for _ in range(ntools))
    return BuildVersionCommand(**reader.common(), platform=platform, minos=minos, sdk=sdk,
                               ntools=ntools, tools=tools)


def _decode_dyld_info(reader: CommandReader) -> DyldInfoCommand:
    fields = [reader.u32() for _ in range(10)]
    return DyldInfoCommand(reader.opcode, reader.byte_length, reader.offset, *fields)


def _decode_linker_option(reader: CommandReader) -> LinkerOptionCommand:
    return LinkerOptionCommand(**reader.common(), count=reader.u32())


def _decode_symseg(reader: CommandReader) -> SymsegCommand:
    symseg_offset = reader.u32()
    size = reader.u32()
    return SymsegCommand(**reader.common(), symseg_offset=symseg_offset, size=size)


def _decode_entry_point(reader: CommandReader) -> EntryPointCommand:
    entryoff = reader.u64()
    stacksize = reader.u64()
    return EntryPointCommand(**reader.common(), entryoff=entryoff, stacksize=stacksize)


def _decode_source_version(reader: CommandReader) -> SourceVersionCommand:
    return SourceVersionCommand(**reader.common(), version=reader.u64())


def _decode_note(reader: CommandReader) -> NoteCommand:
    data_owner = reader.raw(16)
    note_offset = reader.u64()
    size = reader.u64()
    return NoteCommand(**reader.common(), data_owner=data_owner, note_offset=note_offset, size=size)


def _bare(opcode: int) -> int:
    return opcode & ~LC_REQ_DYLD


_DECODERS: Dict[int, Decoder] = {}
for _opcodes, _decoder in (
    ((LC_SEGMENT, LC_SEGMENT_64), decode_segment_command),
    ((LC_LOAD_DYLINKER, LC_ID_DYLINKER, LC_DYLD_ENVIRONMENT), _string_decoder(DylinkerCommand)),
    ((LC_SUB_FRAMEWORK,), _string_decoder(SubFrameworkCommand)),
    ((LC_SUB_UMBRELLA,), _string_decoder(SubUmbrellaCommand)),
    ((LC_SUB_CLIENT,), _string_decoder(SubClientCommand)),
    ((LC_SUB_LIBRARY,), _string_decoder(SubLibraryCommand)),
    ((LC_RPATH,), _string_decoder(RpathCommand)),
    ((LC_LOAD_DYLIB, LC_ID_DYLIB, LC_LOAD_WEAK_DYLIB, LC_REEXPORT_DYLIB,
      LC_LAZY_LOAD_DYLIB, LC_LOAD_UPWARD_DYLIB), _decode_dylib),
    ((LC_LOADFVMLIB, LC_IDFVMLIB), _decode_fvmlib),
    ((LC_FVMFILE,), _decode_fvmfile),
    ((LC_PREBOUND_DYLIB,), _decode_prebound_dylib),
    ((LC_THREAD, LC_UNIXTHREAD), _prefix_decoder(ThreadCommand)),
    ((LC_IDENT,), _prefix_decoder(IdentCommand)),
    ((LC_PREPAGE,), _prefix_decoder(PrepageCommand)),
    ((LC_SYMTAB,), _decode_symtab),
    ((LC_DYSYMTAB,), _decode_dysymtab),
    ((LC_ROUTINES, LC_ROUTINES_64), _decode_routines),
    ((LC_TWOLEVEL_HINTS,), _decode_twolevel_hints),
    ((LC_PREBIND_CKSUM,), _decode_prebind_cksum),
    ((LC_UUID,), _decode_uuid),
    ((LC_CODE_SIGNATURE, LC_CODE_SEGMENT_SPLIT_INFO, LC_FUNCTION_STARTS, LC_DATA_IN_CODE,
      LC_DYLIB_CODE_SIGN_DRS, LC_LINKER_OPTIMIZATION_HINT, LC_DYLD_EXPORTS_TRIE,
      LC_DYLD_CHAINED_FIXUPS, LC_ATOM_INFO), _decode_linkedit_data),
    ((LC_ENCRYPTION_INFO, LC_ENCRYPTION_INFO_64), _decode_encryption_info),
    ((LC_VERSION_MIN_MACOSX, LC_VERSION_MIN_IPHONEOS, LC_VERSION_MIN_TVOS,
      LC_VERSION_MIN_WATCHOS), _decode_version_min),
    ((LC_BUILD_VERSION,), _decode_build_version),
    ((LC_DYLD_INFO, LC_DYLD_INFO_ONLY), _decode_dyld_info),
    ((LC_LINKER_OPTION,), _decode_linker_option),
    ((LC_SYMSEG,), _decode_symseg),
    ((LC_MAIN,), _decode_entry_point),
    ((LC_SOURCE_VERSION,), _decode_source_version),
    ((LC_NOTE,), _decode_note),
):
    for _opcode in _opcodes:
        _DECODERS[_bare(_opcode)] = _decoder


def decoder_for(opcode: int) -> Optional[Decoder]:
    """Декодер по коду команды; бит LC_REQ_DYLD не влияет на выбор"""
    return _DECODERS.get(_bare(opcode))


def decode_load_command(cursor: ByteCursor, header: MachHeader) -> LoadCommand:
    """Прочитать одну load-команду и встать на начало следующей"""
    start = cursor.position()
    opcode = cursor.read_u32(header.byte_order)
    byte_length = cursor.read_u32(header.byte_order)

    if byte_length < LOAD_COMMAND_PREFIX_SIZE:
        raise MalformedRecordError(f"cmdsize={byte_length} меньше размера префикса", start)

    decoder = decoder_for(opcode)
    if decoder is None:
        raise UnknownLoadCommandError(opcode, start)

    command = decoder(CommandReader(cursor, header, opcode, byte_length, start))

    # Следующая запись начинается ровно через cmdsize, сколько бы ни прочитал декодер
    cursor.seek(start + byte_length)
    return command


def decode_load_commands(cursor: ByteCursor, header: MachHeader) -> Tuple[LoadCommand, ...]:
    """Прочитать header.ncmds load-команд, начиная с текущей позиции"""
    return tuple(decode_load_command(cursor, header) for _ in range(header.ncmds))
