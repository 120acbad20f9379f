from typing import Dict, Any, List
from macholib.mach_o import N_WEAK_DEF, N_WEAK_REF
from machodump.core.plugin_base import MachOPlugin
from machodump.core.symbol_decoder import Nlist, SymbolType


class SymbolsPlugin(MachOPlugin):
    """Плагин вывода таблицы символов"""

    def analyze(self) -> Dict[str, Any]:
        symbols = self.document.symbols
        symtab = self.document.symtab
        main_info = {
            "symbols": len(symbols),
            "external": sum(1 for s in symbols if s.is_external),
            "undefined": sum(1 for s in symbols if s.symbol_type is SymbolType.UNDEFINED),
            "debug": sum(1 for s in symbols if s.symbol_type is SymbolType.DEBUG),
            "weak": sum(1 for s in symbols if self._is_weak(s)),
        }
        if symtab is not None:
            main_info["symoff"] = hex(symtab.symoff)
            main_info["stroff"] = hex(symtab.stroff)
            main_info["strsize"] = symtab.strsize

        return {
            "main_info": main_info,
            "details": {
                "symbols": [
                    {
                        "name": symbol.name_text or "-",
                        "type": symbol.symbol_type.value,
                        "section": symbol.section_index or "-",
                        "value": hex(symbol.value),
                        "flags": ", ".join(self._get_flags(symbol)) or "-",
                    }
                    for symbol in symbols
                ],
            },
        }

    @staticmethod
    def _is_weak(symbol: Nlist) -> bool:
        return bool(symbol.descriptor & (N_WEAK_DEF | N_WEAK_REF))

    def _get_flags(self, symbol: Nlist) -> List[str]:
        """Флаги символа"""
        flags = []
        if symbol.is_external:
            flags.append("External")
        if symbol.is_private_external:
            flags.append("Private")
        if symbol.descriptor & N_WEAK_DEF:
            flags.append("Weak definition")
        if symbol.descriptor & N_WEAK_REF:
            flags.append("Weak reference")
        return flags

    @staticmethod
    def get_name() -> str:
        return "symbols"

    @staticmethod
    def get_description() -> str:
        return "Таблица символов"

    @staticmethod
    def get_version() -> str:
        return "1.0.0"
