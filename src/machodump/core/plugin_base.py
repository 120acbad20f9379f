from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
import json
import xml.etree.ElementTree as ET
from enum import Enum

from .parser import MachODocument

console = Console()

class OutputFormat(Enum):
    """Форматы вывода результатов"""
    CONSOLE = "console"
    JSON = "json"
    XML = "xml"

class MachOPlugin(ABC):
    """Базовый класс для всех плагинов вывода разобранного Mach-O

    analyze() возвращает словарь вида
    {"main_info": {параметр: значение}, "details": {раздел: [строки]}}.
    """

    def __init__(self, document: MachODocument, file_path: Optional[str] = None):
        self.document = document
        self.file_path = file_path
        self.results: Optional[Dict[str, Any]] = None

    @abstractmethod
    def analyze(self) -> Dict[str, Any]:
        """Основной метод. Должен возвращать словарь с результатами"""
        pass

    @staticmethod
    @abstractmethod
    def get_name() -> str:
        """Возвращает имя плагина"""
        pass

    @staticmethod
    @abstractmethod
    def get_description() -> str:
        """Возвращает описание функционала плагина"""
        pass

    @staticmethod
    @abstractmethod
    def get_version() -> str:
        """Возвращает версию плагина"""
        pass

    def print_results(self, format: OutputFormat = OutputFormat.CONSOLE) -> None:
        """Выводит результаты в указанном формате"""
        if self.results is None:
            self.results = self.analyze()

        if format == OutputFormat.CONSOLE:
            self._print_console()
        else:
            print(self.export_results(format))

    def export_results(self, format: OutputFormat) -> str:
        """Экспортирует результаты в указанном формате"""
        if self.results is None:
            self.results = self.analyze()

        if format == OutputFormat.JSON:
            return json.dumps(self.results, indent=2)
        elif format == OutputFormat.XML:
            return self._to_xml()
        else:
            raise ValueError(f"Неподдерживаемый формат экспорта: {format}")

    def _print_console(self) -> None:
        """Выводит результаты в консоль с форматированием"""
        if not self.results:
            console.print(Panel("Нет данных", title=self.get_name()))
            return

        console.print(f"\n[bold magenta]{self.get_description()}[/bold magenta]")
        self._print_main_info()
        self._print_details()

    def _print_main_info(self) -> None:
        """Выводит основную информацию в виде таблицы"""
        if "main_info" in self.results:
            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Параметр", style="cyan")
            table.add_column("Значение", style="yellow")

            for key, value in self.results["main_info"].items():
                table.add_row(
                    key.replace("_", " ").title(),
                    str(value)
                )
            console.print(table)

    def _print_details(self) -> None:
        """Выводит детальную информацию"""
        if "details" in self.results:
            for section, items in self.results["details"].items():
                if items:
                    color = self._get_section_color(section)
                    console.print(f"\n[bold {color}]{section}[/bold {color}]")
                    table = Table(show_header=True, header_style=f"bold {color}")

                    # Колонки берем из первой строки
                    for key in items[0].keys():
                        table.add_column(key.replace("_", " ").title(), style="yellow")

                    for item in items:
                        table.add_row(*[str(v) for v in item.values()])

                    console.print(table)

    def _get_section_color(self, section: str) -> str:
        """Возвращает цвет для секции"""
        colors = {
            "versions": "magenta",
            "flags": "yellow",
            "load_commands": "cyan",
            "dylibs": "cyan",
            "segments": "blue",
            "sections": "green",
            "symbols": "green",
        }
        return colors.get(section.lower(), "white")

    def _to_xml(self) -> str:
        """Преобразует результаты в XML"""
        return ET.tostring(self.to_xml_element(), encoding="unicode")

    def to_xml_element(self) -> ET.Element:
        """Результаты в виде XML-элемента <report plugin="...">"""
        if self.results is None:
            self.results = self.analyze()

        root = ET.Element("report")
        root.set("plugin", self.get_name())

        def dict_to_xml(parent, data):
            for key, value in data.items():
                if isinstance(value, dict):
                    child = ET.SubElement(parent, key)
                    dict_to_xml(child, value)
                elif isinstance(value, list):
                    child = ET.SubElement(parent, key)
                    for item in value:
                        if isinstance(item, dict):
                            item_elem = ET.SubElement(child, "item")
                            dict_to_xml(item_elem, item)
                        else:
                            ET.SubElement(child, "item").text = str(item)
                else:
                    ET.SubElement(parent, key).text = str(value)

        dict_to_xml(root, self.results)
        return root
