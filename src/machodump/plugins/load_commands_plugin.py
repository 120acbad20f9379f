from typing import Dict, Any
from machodump.core.plugin_base import MachOPlugin
from machodump.core.constants import PLATFORM_NAMES, format_version, format_source_version
from machodump.core.record import LoadCommand
from machodump.core.segment_decoder import SegmentCommand
from machodump.core.trailing_string import decode_cstring
from machodump.core.load_commands import (
    StringCommand, DylibCommand, FvmlibCommand, FvmfileCommand,
    PreboundDylibCommand, SymtabCommand, DysymtabCommand, RoutinesCommand,
    TwoLevelHintsCommand, PrebindChecksumCommand, UuidCommand,
    LinkeditDataCommand, EncryptionInfoCommand, VersionMinCommand,
    BuildVersionCommand, DyldInfoCommand, LinkerOptionCommand, SymsegCommand,
    EntryPointCommand, SourceVersionCommand, NoteCommand,
)


class LoadCommandsPlugin(MachOPlugin):
    """Плагин вывода списка load-команд"""

    def analyze(self) -> Dict[str, Any]:
        commands = self.document.load_commands
        rows = [
            {
                "index": index,
                "offset": hex(command.offset),
                "command": command.command_name,
                "cmdsize": command.byte_length,
                "summary": self._summarize(command),
            }
            for index, command in enumerate(commands)
        ]
        dylibs = [
            {
                "command": dylib.command_name,
                "path": dylib.path,
                "current_version": dylib.current_version_text,
                "compatibility_version": dylib.compatibility_version_text,
            }
            for dylib in self.document.dylibs
        ]
        return {
            "main_info": {
                "load_commands": len(commands),
                "declared_size": self.document.header.sizeofcmds,
                "decoded_size": sum(command.byte_length for command in commands),
            },
            "details": {
                "load_commands": rows,
                "dylibs": dylibs,
            },
        }

    def _summarize(self, command: LoadCommand) -> str:
        """Краткое описание полей команды"""
        if isinstance(command, SegmentCommand):
            return f"{command.segment_name} vmaddr={hex(command.vmaddr)} nsects={command.nsects}"
        if isinstance(command, StringCommand):
            return command.text
        if isinstance(command, DylibCommand):
            return f"{command.path} ({command.current_version_text})"
        if isinstance(command, (FvmlibCommand, FvmfileCommand)):
            return f"{command.path} header_addr={hex(command.header_addr)}"
        if isinstance(command, PreboundDylibCommand):
            return f"{decode_cstring(command.trailing)} nmodules={command.nmodules}"
        if isinstance(command, SymtabCommand):
            return (f"symoff={hex(command.symoff)} nsyms={command.nsyms} "
                    f"stroff={hex(command.stroff)} strsize={command.strsize}")
        if isinstance(command, DysymtabCommand):
            return (f"local={command.nlocalsym} extdef={command.nextdefsym} "
                    f"undef={command.nundefsym} indirect={command.nindirectsyms}")
        if isinstance(command, RoutinesCommand):
            return f"init_address={hex(command.init_address)} init_module={command.init_module}"
        if isinstance(command, TwoLevelHintsCommand):
            return f"offset={hex(command.hints_offset)} nhints={command.nhints}"
        if isinstance(command, PrebindChecksumCommand):
            return f"cksum={hex(command.cksum)}"
        if isinstance(command, UuidCommand):
            return command.uuid_string
        if isinstance(command, LinkeditDataCommand):
            return f"dataoff={hex(command.dataoff)} datasize={command.datasize}"
        if isinstance(command, EncryptionInfoCommand):
            return f"cryptoff={hex(command.cryptoff)} cryptsize={command.cryptsize} cryptid={command.cryptid}"
        if isinstance(command, VersionMinCommand):
            return f"version={format_version(command.version)} sdk={format_version(command.sdk)}"
        if isinstance(command, BuildVersionCommand):
            platform = PLATFORM_NAMES.get(command.platform, str(command.platform))
            return (f"platform={platform} minos={format_version(command.minos)} "
                    f"sdk={format_version(command.sdk)} ntools={command.ntools}")
        if isinstance(command, DyldInfoCommand):
            return (f"rebase={command.rebase_size} bind={command.bind_size} "
                    f"lazy_bind={command.lazy_bind_size} export={command.export_size}")
        if isinstance(command, LinkerOptionCommand):
            return f"count={command.count}"
        if isinstance(command, SymsegCommand):
            return f"offset={hex(command.symseg_offset)} size={command.size}"
        if isinstance(command, EntryPointCommand):
            return f"entryoff={hex(command.entryoff)} stacksize={command.stacksize}"
        if isinstance(command, SourceVersionCommand):
            return format_source_version(command.version)
        if isinstance(command, NoteCommand):
            return f"{command.owner} offset={hex(command.note_offset)} size={command.size}"
        return "-"

    @staticmethod
    def get_name() -> str:
        return "load_commands"

    @staticmethod
    def get_description() -> str:
        return "Load-команды в порядке следования"

    @staticmethod
    def get_version() -> str:
        return "1.0.0"
