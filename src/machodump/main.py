#!/usr/bin/env python3

import os
import json
import argparse
import xml.etree.ElementTree as ET
from typing import List, Optional
from rich.console import Console
from rich.panel import Panel

from machodump.core.errors import DecodeError
from machodump.core.parser import MachODocument, decode_file
from machodump.core.plugin_base import MachOPlugin, OutputFormat
from machodump.core.plugin_manager import PluginManager

console = Console()

# Порядок вывода отчётов
ORDERED_PLUGINS = [
    "header",
    "load_commands",
    "segments",
    "symbols",
]


class MachODumper:
    """Основной класс для вывода разобранного Mach-O файла"""

    def __init__(self, file_path: str, output_format: OutputFormat = OutputFormat.CONSOLE):
        self.file_path = file_path
        self.output_format = output_format
        self.document: MachODocument = decode_file(file_path)
        self.plugin_manager = PluginManager()
        self.plugin_manager.load_plugins(os.path.join(os.path.dirname(__file__), "plugins"))

    def print_info_panel(self, title: str, content: str) -> None:
        """Выводит информационную панель"""
        console.print(Panel(content, title=title, border_style="blue"))
        console.print()

    def _get_available_ordered_plugins(self) -> List[str]:
        """Возвращает список доступных плагинов в установленном порядке"""
        available_plugins = self.plugin_manager.get_available_plugins()
        return [plugin for plugin in ORDERED_PLUGINS if plugin in available_plugins]

    def run(self, selected: Optional[List[str]] = None) -> None:
        """Запускает выбранные плагины, по умолчанию все"""
        plugins = []
        for plugin_name in self._get_available_ordered_plugins():
            if selected and plugin_name not in selected:
                continue
            plugins.append(self.plugin_manager.instantiate_plugin(plugin_name, self.document, self.file_path))

        if self.output_format == OutputFormat.CONSOLE:
            self.print_info_panel("Файл", self.file_path)
            for plugin in plugins:
                plugin.print_results(self.output_format)
        else:
            print(self.export_report(plugins))

    def export_report(self, plugins: List[MachOPlugin]) -> str:
        """Один JSON-объект или один XML-документ с отчётами всех плагинов"""
        if self.output_format == OutputFormat.JSON:
            report = {"file": self.file_path}
            for plugin in plugins:
                report[plugin.get_name()] = plugin.analyze()
            return json.dumps(report, indent=2)

        root = ET.Element("machodump")
        root.set("file", self.file_path)
        for plugin in plugins:
            root.append(plugin.to_xml_element())
        return ET.tostring(root, encoding="unicode")


def print_error(message: str) -> None:
    """Выводит сообщение об ошибке"""
    console.print(f"[red]Ошибка: {message}[/red]")
    console.print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Mach-O file dumper')
    parser.add_argument('file', help='Path to Mach-O file to decode')
    parser.add_argument('--header', action='store_true', help='Show file header')
    parser.add_argument('--load-commands', action='store_true', help='Show load commands')
    parser.add_argument('--segments', action='store_true', help='Show segments and sections')
    parser.add_argument('--symbols', action='store_true', help='Show symbol table')
    parser.add_argument('--all', action='store_true', help='Show all information')
    parser.add_argument('--format', choices=[f.value for f in OutputFormat],
                        default=OutputFormat.CONSOLE.value, help='Output format')
    return parser


def selected_plugins(args: argparse.Namespace) -> List[str]:
    """Имена плагинов, выбранных флагами; пустой список означает все"""
    if args.all:
        return []
    flags = {
        "header": args.header,
        "load_commands": args.load_commands,
        "segments": args.segments,
        "symbols": args.symbols,
    }
    return [name for name, enabled in flags.items() if enabled]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        dumper = MachODumper(args.file, OutputFormat(args.format))
        dumper.run(selected_plugins(args))
    except DecodeError as e:
        print_error(f"Ошибка при разборе файла: {e}")
        return 1
    except OSError as e:
        print_error(f"Не удалось открыть файл: {e}")
        return 2

    return 0


if __name__ == '__main__':
    exit(main())
