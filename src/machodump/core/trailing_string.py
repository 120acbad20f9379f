from .errors import MalformedRecordError
from .record import CommandReader


def remaining_bytes(reader: CommandReader) -> int:
    """Сколько байт записи осталось после фиксированных полей

    Длина строки нигде не хранится: она равна
    (начало записи + cmdsize) - текущая позиция.
    """
    remaining = reader.end - reader.cursor.position()
    if remaining < 0:
        raise MalformedRecordError(
            f"Фиксированные поля длиннее записи на {-remaining} байт", reader.offset
        )
    return remaining


def extract_trailing_string(reader: CommandReader) -> bytes:
    """Прочитать хвостовую строку записи как есть, вместе с выравниванием"""
    remaining = remaining_bytes(reader)
    if remaining == 0:
        return b""
    return reader.raw(remaining)


def decode_cstring(raw: bytes) -> str:
    """Строка до первого NUL, для вывода"""
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
