from typing import Dict, Any, List
from macholib.mach_o import (
    SECTION_TYPE, S_REGULAR, S_ZEROFILL, S_CSTRING_LITERALS, S_4BYTE_LITERALS,
    S_8BYTE_LITERALS, S_LITERAL_POINTERS, S_NON_LAZY_SYMBOL_POINTERS,
    S_LAZY_SYMBOL_POINTERS, S_SYMBOL_STUBS, S_MOD_INIT_FUNC_POINTERS,
    S_MOD_TERM_FUNC_POINTERS, S_COALESCED, S_GB_ZEROFILL, S_INTERPOSING,
    S_16BYTE_LITERALS, S_DTRACE_DOF, S_LAZY_DYLIB_SYMBOL_POINTERS,
    S_THREAD_LOCAL_REGULAR, S_THREAD_LOCAL_ZEROFILL, S_THREAD_LOCAL_VARIABLES,
    S_THREAD_LOCAL_VARIABLE_POINTERS, S_THREAD_LOCAL_INIT_FUNCTION_POINTERS,
    S_ATTR_PURE_INSTRUCTIONS, S_ATTR_NO_TOC, S_ATTR_STRIP_STATIC_SYMS,
    S_ATTR_NO_DEAD_STRIP, S_ATTR_LIVE_SUPPORT, S_ATTR_SELF_MODIFYING_CODE,
    S_ATTR_DEBUG, S_ATTR_SOME_INSTRUCTIONS, S_ATTR_EXT_RELOC, S_ATTR_LOC_RELOC,
    SG_HIGHVM, SG_FVMLIB, SG_NORELOC, SG_PROTECTED_VERSION_1,
)
from machodump.core.plugin_base import MachOPlugin
from machodump.core.constants import VM_PROT_READ, VM_PROT_WRITE, VM_PROT_EXECUTE

SECTION_TYPES = {
    S_REGULAR: "REGULAR",
    S_ZEROFILL: "ZEROFILL",
    S_CSTRING_LITERALS: "CSTRING_LITERALS",
    S_4BYTE_LITERALS: "4BYTE_LITERALS",
    S_8BYTE_LITERALS: "8BYTE_LITERALS",
    S_LITERAL_POINTERS: "LITERAL_POINTERS",
    S_NON_LAZY_SYMBOL_POINTERS: "NON_LAZY_SYMBOL_POINTERS",
    S_LAZY_SYMBOL_POINTERS: "LAZY_SYMBOL_POINTERS",
    S_SYMBOL_STUBS: "SYMBOL_STUBS",
    S_MOD_INIT_FUNC_POINTERS: "MOD_INIT_FUNC_POINTERS",
    S_MOD_TERM_FUNC_POINTERS: "MOD_TERM_FUNC_POINTERS",
    S_COALESCED: "COALESCED",
    S_GB_ZEROFILL: "GB_ZEROFILL",
    S_INTERPOSING: "INTERPOSING",
    S_16BYTE_LITERALS: "16BYTE_LITERALS",
    S_DTRACE_DOF: "DTRACE_DOF",
    S_LAZY_DYLIB_SYMBOL_POINTERS: "LAZY_DYLIB_SYMBOL_POINTERS",
    S_THREAD_LOCAL_REGULAR: "THREAD_LOCAL_REGULAR",
    S_THREAD_LOCAL_ZEROFILL: "THREAD_LOCAL_ZEROFILL",
    S_THREAD_LOCAL_VARIABLES: "THREAD_LOCAL_VARIABLES",
    S_THREAD_LOCAL_VARIABLE_POINTERS: "THREAD_LOCAL_VARIABLE_POINTERS",
    S_THREAD_LOCAL_INIT_FUNCTION_POINTERS: "THREAD_LOCAL_INIT_FUNCTION_POINTERS",
}

SECTION_ATTRIBUTES = [
    (S_ATTR_PURE_INSTRUCTIONS, "PURE_INSTRUCTIONS"),
    (S_ATTR_NO_TOC, "NO_TOC"),
    (S_ATTR_STRIP_STATIC_SYMS, "STRIP_STATIC_SYMS"),
    (S_ATTR_NO_DEAD_STRIP, "NO_DEAD_STRIP"),
    (S_ATTR_LIVE_SUPPORT, "LIVE_SUPPORT"),
    (S_ATTR_SELF_MODIFYING_CODE, "SELF_MODIFYING_CODE"),
    (S_ATTR_DEBUG, "DEBUG"),
    (S_ATTR_SOME_INSTRUCTIONS, "SOME_INSTRUCTIONS"),
    (S_ATTR_EXT_RELOC, "EXT_RELOC"),
    (S_ATTR_LOC_RELOC, "LOC_RELOC"),
]

SEGMENT_FLAGS = [
    (SG_HIGHVM, "HIGHVM"),
    (SG_FVMLIB, "FVMLIB"),
    (SG_NORELOC, "NORELOC"),
    (SG_PROTECTED_VERSION_1, "PROTECTED_VERSION_1"),
]


class SegmentsPlugin(MachOPlugin):
    """Плагин вывода сегментов и секций"""

    def analyze(self) -> Dict[str, Any]:
        segments = []
        sections = []
        for segment in self.document.segments:
            segments.append({
                "name": segment.segment_name,
                "vmaddr": hex(segment.vmaddr),
                "vmsize": hex(segment.vmsize),
                "fileoff": hex(segment.fileoff),
                "filesize": hex(segment.filesize),
                "maxprot": self._get_prot_flags(segment.maxprot),
                "initprot": self._get_prot_flags(segment.initprot),
                "nsects": segment.nsects,
                "flags": ", ".join(self._get_segment_flags(segment.flags)) or "-",
            })
            for section in segment.sections:
                sections.append({
                    "segment": section.segment_name,
                    "name": section.name,
                    "address": hex(section.address),
                    "size": section.size,
                    "offset": hex(section.file_offset),
                    "align": 1 << section.alignment if section.alignment < 64 else section.alignment,
                    "type": self._get_section_type(section.flags),
                    "attributes": ", ".join(self._get_section_flags(section.flags)) or "-",
                })
        return {
            "main_info": {
                "segments": len(segments),
                "sections": len(sections),
            },
            "details": {
                "segments": segments,
                "sections": sections,
            },
        }

    def _get_prot_flags(self, prot: int) -> str:
        """Получить строку прав доступа"""
        r = "r" if prot & VM_PROT_READ else "-"
        w = "w" if prot & VM_PROT_WRITE else "-"
        x = "x" if prot & VM_PROT_EXECUTE else "-"
        return f"{r}{w}{x}"

    def _get_section_type(self, flags: int) -> str:
        """Получить тип секции"""
        type_mask = flags & SECTION_TYPE
        return SECTION_TYPES.get(type_mask, f"Unknown ({type_mask})")

    def _get_section_flags(self, flags: int) -> List[str]:
        """Получить список атрибутов секции"""
        return [name for value, name in SECTION_ATTRIBUTES if flags & value]

    def _get_segment_flags(self, flags: int) -> List[str]:
        """Получить список флагов сегмента"""
        return [name for value, name in SEGMENT_FLAGS if flags & value]

    @staticmethod
    def get_name() -> str:
        return "segments"

    @staticmethod
    def get_description() -> str:
        return "Сегменты и секции"

    @staticmethod
    def get_version() -> str:
        return "1.0.0"
