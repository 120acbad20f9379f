import os
from typing import Dict, Any, List
from macholib.mach_o import (
    MH_OBJECT, MH_EXECUTE, MH_FVMLIB, MH_CORE, MH_PRELOAD, MH_DYLIB,
    MH_DYLINKER, MH_BUNDLE, MH_DYLIB_STUB, MH_DSYM,
    MH_NOUNDEFS, MH_INCRLINK, MH_DYLDLINK, MH_BINDATLOAD, MH_PREBOUND,
    MH_SPLIT_SEGS, MH_LAZY_INIT, MH_TWOLEVEL, MH_FORCE_FLAT, MH_NOMULTIDEFS,
    MH_NOFIXPREBINDING, MH_PREBINDABLE, MH_ALLMODSBOUND,
    MH_SUBSECTIONS_VIA_SYMBOLS, MH_CANONICAL, MH_WEAK_DEFINES,
    MH_BINDS_TO_WEAK, MH_ALLOW_STACK_EXECUTION, MH_ROOT_SAFE, MH_SETUID_SAFE,
    MH_NO_REEXPORTED_DYLIBS, MH_PIE, MH_DEAD_STRIPPABLE_DYLIB,
    MH_HAS_TLV_DESCRIPTORS, MH_NO_HEAP_EXECUTION, MH_APP_EXTENSION_SAFE,
)
from machodump.core.plugin_base import MachOPlugin
from machodump.core.constants import (
    CPU_TYPE_NAMES, FLAG_DESCRIPTIONS, MH_KEXT_BUNDLE, PLATFORM_NAMES, TOOL_NAMES,
    format_version, format_source_version,
)
from machodump.core.cursor import ByteOrder
from machodump.core.header_decoder import MAGIC_NAMES
from machodump.core.load_commands import (
    BuildVersionCommand, SourceVersionCommand, VersionMinCommand,
)

CPU_SUBTYPE_MASK = 0xff000000
CPU_SUBTYPE_LIB64 = 0x80000000

FILE_TYPES = {
    MH_OBJECT: "Object",
    MH_EXECUTE: "Executable",
    MH_FVMLIB: "Fixed VM Library",
    MH_CORE: "Core",
    MH_PRELOAD: "Preloaded",
    MH_DYLIB: "Dynamic Library",
    MH_DYLINKER: "Dynamic Linker",
    MH_BUNDLE: "Bundle",
    MH_DYLIB_STUB: "Dynamic Library Stub",
    MH_DSYM: "Debug Symbols",
    MH_KEXT_BUNDLE: "Kernel Extension",
}

HEADER_FLAGS = [
    (MH_NOUNDEFS, "MH_NOUNDEFS"),
    (MH_INCRLINK, "MH_INCRLINK"),
    (MH_DYLDLINK, "MH_DYLDLINK"),
    (MH_BINDATLOAD, "MH_BINDATLOAD"),
    (MH_PREBOUND, "MH_PREBOUND"),
    (MH_SPLIT_SEGS, "MH_SPLIT_SEGS"),
    (MH_LAZY_INIT, "MH_LAZY_INIT"),
    (MH_TWOLEVEL, "MH_TWOLEVEL"),
    (MH_FORCE_FLAT, "MH_FORCE_FLAT"),
    (MH_NOMULTIDEFS, "MH_NOMULTIDEFS"),
    (MH_NOFIXPREBINDING, "MH_NOFIXPREBINDING"),
    (MH_PREBINDABLE, "MH_PREBINDABLE"),
    (MH_ALLMODSBOUND, "MH_ALLMODSBOUND"),
    (MH_SUBSECTIONS_VIA_SYMBOLS, "MH_SUBSECTIONS_VIA_SYMBOLS"),
    (MH_CANONICAL, "MH_CANONICAL"),
    (MH_WEAK_DEFINES, "MH_WEAK_DEFINES"),
    (MH_BINDS_TO_WEAK, "MH_BINDS_TO_WEAK"),
    (MH_ALLOW_STACK_EXECUTION, "MH_ALLOW_STACK_EXECUTION"),
    (MH_ROOT_SAFE, "MH_ROOT_SAFE"),
    (MH_SETUID_SAFE, "MH_SETUID_SAFE"),
    (MH_NO_REEXPORTED_DYLIBS, "MH_NO_REEXPORTED_DYLIBS"),
    (MH_PIE, "MH_PIE"),
    (MH_DEAD_STRIPPABLE_DYLIB, "MH_DEAD_STRIPPABLE_DYLIB"),
    (MH_HAS_TLV_DESCRIPTORS, "MH_HAS_TLV_DESCRIPTORS"),
    (MH_NO_HEAP_EXECUTION, "MH_NO_HEAP_EXECUTION"),
    (MH_APP_EXTENSION_SAFE, "MH_APP_EXTENSION_SAFE"),
]


class HeaderPlugin(MachOPlugin):
    """Плагин вывода заголовка Mach-O файла"""

    def analyze(self) -> Dict[str, Any]:
        """Собирает основную информацию, флаги и версии"""
        header = self.document.header
        main_info = {
            "magic": f"{hex(header.magic)} ({MAGIC_NAMES.get(header.magic, 'Unknown')})",
            "byte_order": "big-endian" if header.byte_order is ByteOrder.BIG else "little-endian",
            "bitness": f"{header.bit_width.value}-bit",
            "cpu_type": self._get_cpu_type(header.cputype),
            "cpu_subtype": self._get_cpu_subtype(header.cpusubtype),
            "file_type": self._get_file_type(header.filetype),
            "ncmds": header.ncmds,
            "sizeofcmds": header.sizeofcmds,
            "flags": hex(header.flags),
        }
        if header.reserved is not None:
            main_info["reserved"] = hex(header.reserved)
        if self.document.uuid:
            main_info["uuid"] = self.document.uuid
        if self.file_path and os.path.exists(self.file_path):
            file_size = os.path.getsize(self.file_path)
            main_info["size"] = f"{file_size / 1024:.2f} Kb ({file_size} bytes)"

        return {
            "main_info": main_info,
            "details": {
                "flags": self._get_flags(header.flags),
                "versions": self._get_versions(),
            },
        }

    def _get_flags(self, flags: int) -> List[Dict[str, str]]:
        """Получить список установленных флагов с описанием"""
        return [
            {"flag": name, "description": FLAG_DESCRIPTIONS.get(name, "")}
            for value, name in HEADER_FLAGS
            if flags & value
        ]

    def _get_versions(self) -> List[Dict[str, str]]:
        """Версии ОС, SDK, инструментов и исходного кода"""
        versions = []
        for command in self.document.commands_of(VersionMinCommand):
            versions.append({"command": command.command_name, "parameter": "minos", "value": format_version(command.version)})
            versions.append({"command": command.command_name, "parameter": "sdk", "value": format_version(command.sdk)})
        for command in self.document.commands_of(BuildVersionCommand):
            platform = PLATFORM_NAMES.get(command.platform, f"Unknown ({command.platform})")
            versions.append({"command": command.command_name, "parameter": "platform", "value": platform})
            versions.append({"command": command.command_name, "parameter": "minos", "value": format_version(command.minos)})
            versions.append({"command": command.command_name, "parameter": "sdk", "value": format_version(command.sdk)})
            for tool in command.tools:
                versions.append({
                    "command": command.command_name,
                    "parameter": TOOL_NAMES.get(tool.tool, f"tool {tool.tool}"),
                    "value": format_version(tool.version),
                })
        for command in self.document.commands_of(SourceVersionCommand):
            versions.append({"command": command.command_name, "parameter": "source", "value": format_source_version(command.version)})
        return versions

    @staticmethod
    def _get_cpu_type(cputype: int) -> str:
        """Получить тип CPU"""
        return CPU_TYPE_NAMES.get(cputype, f"Unknown ({cputype})")

    @staticmethod
    def _get_cpu_subtype(cpusubtype: int) -> str:
        """Получить подтип CPU без битов возможностей"""
        subtype = str(cpusubtype & ~CPU_SUBTYPE_MASK & 0xffffffff)
        if cpusubtype & CPU_SUBTYPE_LIB64:
            subtype += " (LIB64)"
        return subtype

    @staticmethod
    def _get_file_type(filetype: int) -> str:
        """Получить тип файла"""
        return FILE_TYPES.get(filetype, f"Unknown ({filetype})")

    @staticmethod
    def get_name() -> str:
        return "header"

    @staticmethod
    def get_description() -> str:
        return "Заголовок Mach-O файла: magic, архитектура, тип файла, флаги и версии"

    @staticmethod
    def get_version() -> str:
        return "1.0.0"
