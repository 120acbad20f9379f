import unittest

from macholib.mach_o import (
    LC_REQ_DYLD, LC_LOAD_DYLIB, LC_LOAD_WEAK_DYLIB, LC_ID_DYLINKER, LC_LOAD_DYLINKER,
    LC_RPATH, LC_SUB_FRAMEWORK, LC_SUB_CLIENT, LC_UUID, LC_SYMTAB, LC_DYSYMTAB,
    LC_THREAD, LC_UNIXTHREAD, LC_IDENT, LC_PREBOUND_DYLIB, LC_ROUTINES,
    LC_ROUTINES_64, LC_TWOLEVEL_HINTS, LC_PREBIND_CKSUM, LC_CODE_SIGNATURE,
    LC_ENCRYPTION_INFO, LC_ENCRYPTION_INFO_64, LC_VERSION_MIN_MACOSX,
    LC_DYLD_INFO_ONLY, LC_LINKER_OPTION, LC_SYMSEG, LC_MAIN, LC_SOURCE_VERSION,
    LC_LOADFVMLIB, LC_FVMFILE, LC_PREPAGE, LC_CODE_SEGMENT_SPLIT_INFO,
)

from machodump.core.constants import (
    LC_BUILD_VERSION, LC_DYLD_CHAINED_FIXUPS, LC_NOTE, load_command_name,
)
from machodump.core.cursor import ByteCursor, ByteOrder
from machodump.core.errors import (
    MalformedRecordError, SeekOutOfRangeError, TruncatedError, UnknownLoadCommandError,
)
from machodump.core.header_decoder import BitWidth, decode_header
from machodump.core.load_commands import (
    BuildVersionCommand, DyldInfoCommand, DylibCommand, DylinkerCommand,
    DysymtabCommand, EncryptionInfoCommand, EntryPointCommand, FvmfileCommand,
    FvmlibCommand, IdentCommand, LinkeditDataCommand, LinkerOptionCommand,
    NoteCommand, PreboundDylibCommand, PrebindChecksumCommand, PrepageCommand,
    RoutinesCommand, RpathCommand, SourceVersionCommand, SubClientCommand,
    SubFrameworkCommand, SymsegCommand, SymtabCommand, ThreadCommand,
    TwoLevelHintsCommand, UuidCommand, VersionMinCommand, decode_load_commands,
    decoder_for,
)

from builders import MachOBuilder

UUID_BYTES = bytes.fromhex("0123456789abcdef0011223344556677")


def decode_commands(builder: MachOBuilder, ncmds=None):
    """Разобрать заголовок и load-команды собранного файла"""
    cursor = ByteCursor.from_bytes(builder.build(ncmds=ncmds))
    header = decode_header(cursor)
    return decode_load_commands(cursor, header)


class TestDispatch(unittest.TestCase):
    def test_padding_is_skipped(self):
        """Следующая запись читается с начало + cmdsize, а не с конца строки"""
        builder = MachOBuilder()
        builder.add_dylib(LC_LOAD_DYLIB, b"/usr/lib/libSystem.B.dylib", pad_to=56)
        builder.add_command(LC_UUID, UUID_BYTES)
        dylib, uuid = decode_commands(builder)

        self.assertIsInstance(dylib, DylibCommand)
        self.assertEqual(dylib.byte_length, 56)
        self.assertEqual(len(dylib.name), 32)
        self.assertEqual(dylib.path, "/usr/lib/libSystem.B.dylib")
        self.assertIsInstance(uuid, UuidCommand)
        self.assertEqual(uuid.offset, builder.header_size + 56)
        self.assertEqual(uuid.uuid, UUID_BYTES)
        self.assertEqual(uuid.uuid_string, "01234567-89AB-CDEF-0011-223344556677")

    def test_records_in_file_order(self):
        """Порядок записей и смещения совпадают с файлом"""
        builder = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        builder.add_command(LC_UUID, UUID_BYTES)
        builder.add_string_command(LC_RPATH, b"@loader_path", pad_to=28)
        builder.add_command(LC_PREBIND_CKSUM, builder.pack("I", 0xabcd))
        commands = decode_commands(builder)

        self.assertEqual([type(c) for c in commands],
                         [UuidCommand, RpathCommand, PrebindChecksumCommand])
        self.assertEqual([c.offset for c in commands], [28, 52, 80])
        self.assertEqual(commands[0].end_offset, commands[1].offset)
        self.assertEqual(commands[2].cksum, 0xabcd)

    def test_req_dyld_bit_is_masked(self):
        """Бит LC_REQ_DYLD не влияет на выбор декодера"""
        self.assertIs(decoder_for(LC_LOAD_WEAK_DYLIB), decoder_for(LC_LOAD_DYLIB))
        self.assertIs(decoder_for(LC_UUID | LC_REQ_DYLD), decoder_for(LC_UUID))

        builder = MachOBuilder()
        builder.add_dylib(LC_LOAD_WEAK_DYLIB, b"/usr/lib/libz.dylib", pad_to=48)
        builder.add_command(LC_UUID | LC_REQ_DYLD, UUID_BYTES)
        weak, uuid = decode_commands(builder)

        self.assertIsInstance(weak, DylibCommand)
        self.assertEqual(weak.opcode, LC_LOAD_WEAK_DYLIB)
        self.assertEqual(weak.command_name, "LC_LOAD_WEAK_DYLIB")
        self.assertTrue(weak.requires_dyld)
        self.assertIsInstance(uuid, UuidCommand)
        self.assertEqual(uuid.opcode, LC_UUID | LC_REQ_DYLD)
        self.assertEqual(uuid.command_name, "LC_UUID")
        self.assertEqual(load_command_name(LC_UUID | LC_REQ_DYLD), "LC_UUID")
        self.assertEqual(load_command_name(0x7f | LC_REQ_DYLD), "LC_UNKNOWN (0x8000007f)")

    def test_unknown_opcode(self):
        """Команда без декодера"""
        builder = MachOBuilder()
        builder.add_command(0x7f, b"\0" * 8)
        with self.assertRaises(UnknownLoadCommandError) as ctx:
            decode_commands(builder)
        self.assertEqual(ctx.exception.opcode, 0x7f)
        self.assertEqual(ctx.exception.offset, builder.header_size)

    def test_cmdsize_smaller_than_prefix(self):
        """cmdsize меньше 8 байт"""
        builder = MachOBuilder()
        builder.add_command(LC_UUID, UUID_BYTES, cmdsize=4)
        with self.assertRaises(MalformedRecordError):
            decode_commands(builder)

    def test_field_crosses_cmdsize(self):
        """Фиксированные поля не помещаются в cmdsize"""
        builder = MachOBuilder()
        builder.add_command(LC_SYMTAB, builder.pack("IIII", 1, 2, 3, 4), cmdsize=16)
        with self.assertRaises(MalformedRecordError) as ctx:
            decode_commands(builder)
        self.assertEqual(ctx.exception.offset, builder.header_size)

    def test_more_commands_than_file(self):
        """ncmds больше, чем записей в файле"""
        builder = MachOBuilder()
        builder.add_command(LC_UUID, UUID_BYTES)
        with self.assertRaises(TruncatedError):
            decode_commands(builder, ncmds=2)

    def test_cmdsize_past_end_of_file(self):
        """cmdsize указывает за конец файла"""
        builder = MachOBuilder()
        builder.add_command(LC_UUID, UUID_BYTES, cmdsize=4096)
        with self.assertRaises(SeekOutOfRangeError):
            decode_commands(builder)


class TestStringCommands(unittest.TestCase):
    def test_dylinker(self):
        """Путь к динамическому загрузчику"""
        builder = MachOBuilder()
        builder.add_string_command(LC_LOAD_DYLINKER, b"/usr/lib/dyld", pad_to=32)
        command, = decode_commands(builder)
        self.assertIsInstance(command, DylinkerCommand)
        self.assertEqual(command.string_offset, 12)
        self.assertEqual(len(command.string), 20)
        self.assertEqual(command.text, "/usr/lib/dyld")

    def test_empty_trailing_string(self):
        """Запись без байт после фиксированных полей"""
        builder = MachOBuilder()
        builder.add_command(LC_ID_DYLINKER, builder.pack("I", 12))
        command, = decode_commands(builder)
        self.assertEqual(command.string, b"")
        self.assertEqual(command.text, "")

    def test_sub_framework_and_client(self):
        """Разные коды дают разные типы записей"""
        builder = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        builder.add_string_command(LC_SUB_FRAMEWORK, b"Foundation", pad_to=24)
        builder.add_string_command(LC_SUB_CLIENT, b"AppKit", pad_to=20)
        framework, client = decode_commands(builder)
        self.assertIsInstance(framework, SubFrameworkCommand)
        self.assertIsInstance(client, SubClientCommand)
        self.assertEqual(framework.text, "Foundation")
        self.assertEqual(client.text, "AppKit")

    def test_dylib_fields(self):
        """Поля dylib_command"""
        builder = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        builder.add_dylib(LC_LOAD_DYLIB, b"libfoo.dylib", timestamp=5,
                          current_version=0x00010203, compatibility_version=0x00010000)
        dylib, = decode_commands(builder)
        self.assertEqual(dylib.name_offset, 24)
        self.assertEqual(dylib.timestamp, 5)
        self.assertEqual(dylib.current_version_text, "1.2.3")
        self.assertEqual(dylib.compatibility_version_text, "1.0.0")
        self.assertEqual(dylib.name, b"libfoo.dylib\0")

    def test_fvmlib_and_fvmfile(self):
        """Устаревшие записи фиксированных библиотек"""
        builder = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        builder.add_command(LC_LOADFVMLIB, builder.pack("III", 20, 3, 0x1000) + b"libsys\0\0")
        builder.add_command(LC_FVMFILE, builder.pack("II", 16, 0x2000) + b"file\0\0\0\0")
        fvmlib, fvmfile = decode_commands(builder)
        self.assertIsInstance(fvmlib, FvmlibCommand)
        self.assertEqual(fvmlib.minor_version, 3)
        self.assertEqual(fvmlib.header_addr, 0x1000)
        self.assertEqual(fvmlib.path, "libsys")
        self.assertIsInstance(fvmfile, FvmfileCommand)
        self.assertEqual(fvmfile.header_addr, 0x2000)
        self.assertEqual(fvmfile.path, "file")

    def test_prebound_dylib_keeps_trailing_bytes(self):
        """Имя и битовый вектор модулей хранятся одним блоком"""
        builder = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        trailing = b"libbar.dylib\0" + b"\x05\x00\x00"
        builder.add_command(LC_PREBOUND_DYLIB, builder.pack("III", 20, 3, 33) + trailing)
        command, = decode_commands(builder)
        self.assertIsInstance(command, PreboundDylibCommand)
        self.assertEqual(command.nmodules, 3)
        self.assertEqual(command.linked_modules_offset, 33)
        self.assertEqual(command.trailing, trailing)


class TestFixedCommands(unittest.TestCase):
    def test_prefix_only_commands(self):
        """Содержимое LC_THREAD, LC_IDENT, LC_PREPAGE пропускается целиком"""
        builder = MachOBuilder()
        builder.add_command(LC_UNIXTHREAD, b"\x11" * 40)
        builder.add_command(LC_IDENT, b"ident\0\0\0")
        builder.add_command(LC_PREPAGE)
        builder.add_command(LC_UUID, UUID_BYTES)
        thread, ident, prepage, uuid = decode_commands(builder)
        self.assertIsInstance(thread, ThreadCommand)
        self.assertEqual(thread.byte_length, 48)
        self.assertIsInstance(ident, IdentCommand)
        self.assertIsInstance(prepage, PrepageCommand)
        self.assertEqual(uuid.uuid, UUID_BYTES)
        self.assertIsInstance(decode_commands(MachOBuilder().add_command(LC_THREAD))[0], ThreadCommand)

    def test_symtab_and_dysymtab(self):
        """Таблицы символов"""
        builder = MachOBuilder()
        builder.add_command(LC_SYMTAB, builder.pack("IIII", 0x100, 4, 0x200, 0x40))
        builder.add_command(LC_DYSYMTAB, builder.pack("I" * 18, *range(1, 19)))
        symtab, dysymtab = decode_commands(builder)
        self.assertIsInstance(symtab, SymtabCommand)
        self.assertEqual((symtab.symoff, symtab.nsyms, symtab.stroff, symtab.strsize),
                         (0x100, 4, 0x200, 0x40))
        self.assertIsInstance(dysymtab, DysymtabCommand)
        self.assertEqual(dysymtab.ilocalsym, 1)
        self.assertEqual(dysymtab.nundefsym, 6)
        self.assertEqual(dysymtab.nindirectsyms, 14)
        self.assertEqual(dysymtab.nlocrel, 18)

    def test_routines_width_follows_header(self):
        """Разрядность полей LC_ROUTINES определяется заголовком"""
        builder32 = MachOBuilder(ByteOrder.BIG, BitWidth.W32)
        builder32.add_command(LC_ROUTINES, builder32.pack("I" * 8, 0x1000, 2, 0, 0, 0, 0, 0, 9))
        routines32, = decode_commands(builder32)
        self.assertIsInstance(routines32, RoutinesCommand)
        self.assertEqual(routines32.init_address, 0x1000)
        self.assertEqual(routines32.init_module, 2)
        self.assertEqual(routines32.reserved, (0, 0, 0, 0, 0, 9))

        builder64 = MachOBuilder(ByteOrder.LITTLE, BitWidth.W64)
        builder64.add_command(LC_ROUTINES_64, builder64.pack("Q" * 8, 0x100000000, 1, 0, 0, 0, 0, 0, 0))
        routines64, = decode_commands(builder64)
        self.assertEqual(routines64.init_address, 0x100000000)
        self.assertEqual(routines64.byte_length, 72)

    def test_encryption_info_pad(self):
        """Поле pad есть только у 64-битной записи"""
        builder32 = MachOBuilder(ByteOrder.LITTLE, BitWidth.W32)
        builder32.add_command(LC_ENCRYPTION_INFO, builder32.pack("III", 0x4000, 0x1000, 1))
        info32, = decode_commands(builder32)
        self.assertIsInstance(info32, EncryptionInfoCommand)
        self.assertIsNone(info32.pad)
        self.assertEqual(info32.cryptid, 1)

        builder64 = MachOBuilder(ByteOrder.LITTLE, BitWidth.W64)
        builder64.add_command(LC_ENCRYPTION_INFO_64, builder64.pack("IIII", 0x4000, 0x1000, 0, 0))
        info64, = decode_commands(builder64)
        self.assertEqual(info64.pad, 0)
        self.assertEqual(info64.cryptoff, 0x4000)

    def test_linkedit_data(self):
        """Ссылки на __LINKEDIT, включая новые коды с LC_REQ_DYLD"""
        builder = MachOBuilder()
        builder.add_command(LC_CODE_SIGNATURE, builder.pack("II", 0x8000, 0x200))
        builder.add_command(LC_DYLD_CHAINED_FIXUPS, builder.pack("II", 0x4000, 0x80))
        signature, fixups = decode_commands(builder)
        self.assertIsInstance(signature, LinkeditDataCommand)
        self.assertEqual(signature.command_name, "LC_CODE_SIGNATURE")
        self.assertEqual((signature.dataoff, signature.datasize), (0x8000, 0x200))
        self.assertIsInstance(fixups, LinkeditDataCommand)
        self.assertEqual(fixups.command_name, "LC_DYLD_CHAINED_FIXUPS")
        self.assertTrue(fixups.requires_dyld)

    def test_split_info_name(self):
        """LC_SEGMENT_SPLIT_INFO читается как ссылка на __LINKEDIT"""
        builder = MachOBuilder()
        builder.add_command(LC_CODE_SEGMENT_SPLIT_INFO, builder.pack("II", 0x6000, 0x40))
        split, = decode_commands(builder)
        self.assertIsInstance(split, LinkeditDataCommand)
        self.assertEqual(split.command_name, "LC_SEGMENT_SPLIT_INFO")
        self.assertEqual((split.dataoff, split.datasize), (0x6000, 0x40))

    def test_versions(self):
        """Версии ОС, SDK и исходного кода"""
        builder = MachOBuilder()
        builder.add_command(LC_VERSION_MIN_MACOSX, builder.pack("II", 0x000a0f00, 0x000b0000))
        builder.add_command(LC_SOURCE_VERSION, builder.pack("Q", (1 << 40) | (2 << 30)))
        builder.add_command(LC_BUILD_VERSION, builder.pack("IIIIII", 1, 0x000e0000, 0x000f0200, 1, 3, 0x03e80100))
        version_min, source, build = decode_commands(builder)

        self.assertIsInstance(version_min, VersionMinCommand)
        self.assertEqual(version_min.version, 0x000a0f00)
        self.assertIsInstance(source, SourceVersionCommand)
        self.assertEqual(source.version, (1 << 40) | (2 << 30))
        self.assertIsInstance(build, BuildVersionCommand)
        self.assertEqual(build.platform, 1)
        self.assertEqual(build.ntools, 1)
        self.assertEqual(build.tools[0].tool, 3)
        self.assertEqual(build.tools[0].version, 0x03e80100)

    def test_build_version_tools_overflow(self):
        """ntools не помещается в запись"""
        builder = MachOBuilder()
        builder.add_command(LC_BUILD_VERSION, builder.pack("IIII", 1, 0, 0, 5))
        with self.assertRaises(MalformedRecordError):
            decode_commands(builder)

    def test_dyld_info_and_misc(self):
        """Записи с фиксированным набором полей"""
        builder = MachOBuilder()
        builder.add_command(LC_DYLD_INFO_ONLY, builder.pack("I" * 10, *range(10, 20)))
        builder.add_command(LC_MAIN, builder.pack("QQ", 0x3f40, 0))
        builder.add_command(LC_LINKER_OPTION, builder.pack("I", 2) + b"-lz\0-lc\0")
        builder.add_command(LC_TWOLEVEL_HINTS, builder.pack("II", 0x500, 7))
        builder.add_command(LC_SYMSEG, builder.pack("II", 0x600, 8))
        builder.add_command(LC_NOTE, b"owner".ljust(16, b"\0") + builder.pack("QQ", 0x700, 9))
        dyld_info, entry, option, hints, symseg, note = decode_commands(builder)

        self.assertIsInstance(dyld_info, DyldInfoCommand)
        self.assertEqual(dyld_info.rebase_off, 10)
        self.assertEqual(dyld_info.export_size, 19)
        self.assertIsInstance(entry, EntryPointCommand)
        self.assertEqual(entry.entryoff, 0x3f40)
        self.assertIsInstance(option, LinkerOptionCommand)
        self.assertEqual(option.count, 2)
        self.assertIsInstance(hints, TwoLevelHintsCommand)
        self.assertEqual(hints.nhints, 7)
        self.assertIsInstance(symseg, SymsegCommand)
        self.assertEqual(symseg.size, 8)
        self.assertIsInstance(note, NoteCommand)
        self.assertEqual(note.owner, "owner")
        self.assertEqual((note.note_offset, note.size), (0x700, 9))


if __name__ == '__main__':
    unittest.main()
