class DecodeError(Exception):
    """Базовая ошибка разбора Mach-O файла"""
    pass


class InvalidMagicError(DecodeError):
    """Первые 4 байта не являются magic number Mach-O"""

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"Неизвестный magic number: 0x{value:08x}")


class TruncatedError(DecodeError):
    """Файл закончился раньше, чем требует чтение"""

    def __init__(self, offset: int, requested: int, available: int):
        self.offset = offset
        self.requested = requested
        self.available = available
        super().__init__(
            f"Недостаточно данных по смещению 0x{offset:x}: "
            f"требуется {requested} байт, доступно {available}"
        )


class SeekOutOfRangeError(DecodeError):
    """Смещение за пределами файла"""

    def __init__(self, offset: int, size: int):
        self.offset = offset
        self.size = size
        super().__init__(f"Смещение 0x{offset:x} за пределами файла размером {size} байт")


class UnknownLoadCommandError(DecodeError):
    """Для load-команды нет зарегистрированного декодера"""

    def __init__(self, opcode: int, offset: int):
        self.opcode = opcode
        self.offset = offset
        super().__init__(f"Неизвестная load-команда 0x{opcode:x} по смещению 0x{offset:x}")


class MalformedRecordError(DecodeError):
    """Поля записи противоречат друг другу"""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(f"{message} (смещение 0x{offset:x})")
