import os
import importlib
import inspect
from typing import Dict, List, Type, Optional
from .plugin_base import MachOPlugin
from .parser import MachODocument

PLUGIN_PACKAGE = "machodump.plugins"

class PluginManager:
    """Менеджер для загрузки и управления плагинами"""

    def __init__(self):
        self.plugins: Dict[str, Type[MachOPlugin]] = {}

    def load_plugins(self, plugin_dir: str, package: str = PLUGIN_PACKAGE) -> None:
        """Загружает все плагины из указанной директории"""
        for file in sorted(os.listdir(plugin_dir)):
            if file.endswith(".py") and not file.startswith("__"):
                module = importlib.import_module(f"{package}.{file[:-3]}")
                for name, obj in inspect.getmembers(module, inspect.isclass):
                    if (issubclass(obj, MachOPlugin) and
                        obj is not MachOPlugin and
                        not inspect.isabstract(obj)):
                        self.register_plugin(obj)

    def register_plugin(self, plugin_class: Type[MachOPlugin]) -> None:
        """Регистрирует новый плагин"""
        self.plugins[plugin_class.get_name()] = plugin_class

    def get_plugin(self, name: str) -> Optional[Type[MachOPlugin]]:
        """Получает плагин по имени"""
        return self.plugins.get(name)

    def get_available_plugins(self) -> List[str]:
        """Возвращает список доступных плагинов"""
        return list(self.plugins.keys())

    def get_plugin_info(self, plugin_name: str) -> Dict[str, str]:
        """Возвращает информацию о плагине"""
        plugin_class = self.plugins.get(plugin_name)
        if plugin_class:
            return {
                "name": plugin_class.get_name(),
                "description": plugin_class.get_description(),
                "version": plugin_class.get_version()
            }
        return {}

    def instantiate_plugin(self, plugin_name: str, document: MachODocument, file_path: Optional[str] = None) -> Optional[MachOPlugin]:
        """Создает экземпляр плагина"""
        plugin_class = self.plugins.get(plugin_name)
        if plugin_class:
            return plugin_class(document, file_path)
        return None
