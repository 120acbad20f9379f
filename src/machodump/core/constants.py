from macholib.mach_o import (
    LC_REQ_DYLD, LC_SEGMENT, LC_SYMTAB, LC_SYMSEG, LC_THREAD, LC_UNIXTHREAD,
    LC_LOADFVMLIB, LC_IDFVMLIB, LC_IDENT, LC_FVMFILE, LC_PREPAGE, LC_DYSYMTAB,
    LC_LOAD_DYLIB, LC_ID_DYLIB, LC_LOAD_DYLINKER, LC_ID_DYLINKER,
    LC_PREBOUND_DYLIB, LC_ROUTINES, LC_SUB_FRAMEWORK, LC_SUB_UMBRELLA,
    LC_SUB_CLIENT, LC_SUB_LIBRARY, LC_TWOLEVEL_HINTS, LC_PREBIND_CKSUM,
    LC_LOAD_WEAK_DYLIB, LC_SEGMENT_64, LC_ROUTINES_64, LC_UUID, LC_RPATH,
    LC_CODE_SIGNATURE, LC_CODE_SEGMENT_SPLIT_INFO, LC_REEXPORT_DYLIB,
    LC_LAZY_LOAD_DYLIB, LC_ENCRYPTION_INFO, LC_DYLD_INFO, LC_DYLD_INFO_ONLY,
    LC_LOAD_UPWARD_DYLIB, LC_VERSION_MIN_MACOSX, LC_VERSION_MIN_IPHONEOS,
    LC_FUNCTION_STARTS, LC_DYLD_ENVIRONMENT, LC_MAIN, LC_DATA_IN_CODE,
    LC_SOURCE_VERSION, LC_DYLIB_CODE_SIGN_DRS, LC_ENCRYPTION_INFO_64,
    LC_LINKER_OPTION, LC_LINKER_OPTIMIZATION_HINT, LC_VERSION_MIN_TVOS,
    LC_VERSION_MIN_WATCHOS, LC_NOTE, LC_BUILD_VERSION, LC_DYLD_EXPORTS_TRIE,
    LC_DYLD_CHAINED_FIXUPS,
)

# Константы, которых нет в macholib
LC_ATOM_INFO = 0x36
MH_KEXT_BUNDLE = 0xB

# CPU Type константы
CPU_ARCH_ABI64 = 0x01000000
CPU_ARCH_ABI64_32 = 0x02000000
CPU_TYPE_ANY = -1
CPU_TYPE_VAX = 0x1
CPU_TYPE_MC680X0 = 0x6
CPU_TYPE_X86 = 0x7
CPU_TYPE_X86_64 = CPU_TYPE_X86 | CPU_ARCH_ABI64
CPU_TYPE_MIPS = 0x8
CPU_TYPE_MC98000 = 0xa
CPU_TYPE_HPPA = 0xb
CPU_TYPE_ARM = 0xc
CPU_TYPE_ARM64 = CPU_TYPE_ARM | CPU_ARCH_ABI64
CPU_TYPE_ARM64_32 = CPU_TYPE_ARM | CPU_ARCH_ABI64_32
CPU_TYPE_MC88000 = 0xd
CPU_TYPE_SPARC = 0xe
CPU_TYPE_I860 = 0xf
CPU_TYPE_POWERPC = 18
CPU_TYPE_POWERPC64 = CPU_TYPE_POWERPC | CPU_ARCH_ABI64

CPU_TYPE_NAMES = {
    CPU_TYPE_ANY: "any",
    CPU_TYPE_VAX: "vax",
    CPU_TYPE_MC680X0: "mc680x0",
    CPU_TYPE_X86: "x86",
    CPU_TYPE_X86_64: "x86_64",
    CPU_TYPE_MIPS: "mips",
    CPU_TYPE_MC98000: "mc98000",
    CPU_TYPE_HPPA: "hppa",
    CPU_TYPE_ARM: "arm",
    CPU_TYPE_ARM64: "arm64",
    CPU_TYPE_ARM64_32: "arm64_32",
    CPU_TYPE_MC88000: "mc88000",
    CPU_TYPE_SPARC: "sparc",
    CPU_TYPE_I860: "i860",
    CPU_TYPE_POWERPC: "powerpc",
    CPU_TYPE_POWERPC64: "powerpc64",
}

# Права доступа сегментов
VM_PROT_READ = 0x1
VM_PROT_WRITE = 0x2
VM_PROT_EXECUTE = 0x4

# Платформы LC_BUILD_VERSION
PLATFORM_NAMES = {
    1: "macOS",
    2: "iOS",
    3: "tvOS",
    4: "watchOS",
    5: "bridgeOS",
    6: "Mac Catalyst",
    7: "iOS Simulator",
    8: "tvOS Simulator",
    9: "watchOS Simulator",
    10: "DriverKit",
    11: "visionOS",
    12: "visionOS Simulator",
}

TOOL_NAMES = {
    1: "clang",
    2: "swift",
    3: "ld",
    4: "lld",
}

LOAD_COMMAND_NAMES = {
    LC_SEGMENT: "LC_SEGMENT",
    LC_SYMTAB: "LC_SYMTAB",
    LC_SYMSEG: "LC_SYMSEG",
    LC_THREAD: "LC_THREAD",
    LC_UNIXTHREAD: "LC_UNIXTHREAD",
    LC_LOADFVMLIB: "LC_LOADFVMLIB",
    LC_IDFVMLIB: "LC_IDFVMLIB",
    LC_IDENT: "LC_IDENT",
    LC_FVMFILE: "LC_FVMFILE",
    LC_PREPAGE: "LC_PREPAGE",
    LC_DYSYMTAB: "LC_DYSYMTAB",
    LC_LOAD_DYLIB: "LC_LOAD_DYLIB",
    LC_ID_DYLIB: "LC_ID_DYLIB",
    LC_LOAD_DYLINKER: "LC_LOAD_DYLINKER",
    LC_ID_DYLINKER: "LC_ID_DYLINKER",
    LC_PREBOUND_DYLIB: "LC_PREBOUND_DYLIB",
    LC_ROUTINES: "LC_ROUTINES",
    LC_SUB_FRAMEWORK: "LC_SUB_FRAMEWORK",
    LC_SUB_UMBRELLA: "LC_SUB_UMBRELLA",
    LC_SUB_CLIENT: "LC_SUB_CLIENT",
    LC_SUB_LIBRARY: "LC_SUB_LIBRARY",
    LC_TWOLEVEL_HINTS: "LC_TWOLEVEL_HINTS",
    LC_PREBIND_CKSUM: "LC_PREBIND_CKSUM",
    LC_LOAD_WEAK_DYLIB: "LC_LOAD_WEAK_DYLIB",
    LC_SEGMENT_64: "LC_SEGMENT_64",
    LC_ROUTINES_64: "LC_ROUTINES_64",
    LC_UUID: "LC_UUID",
    LC_RPATH: "LC_RPATH",
    LC_CODE_SIGNATURE: "LC_CODE_SIGNATURE",
    LC_CODE_SEGMENT_SPLIT_INFO: "LC_SEGMENT_SPLIT_INFO",
    LC_REEXPORT_DYLIB: "LC_REEXPORT_DYLIB",
    LC_LAZY_LOAD_DYLIB: "LC_LAZY_LOAD_DYLIB",
    LC_ENCRYPTION_INFO: "LC_ENCRYPTION_INFO",
    LC_DYLD_INFO: "LC_DYLD_INFO",
    LC_DYLD_INFO_ONLY: "LC_DYLD_INFO_ONLY",
    LC_LOAD_UPWARD_DYLIB: "LC_LOAD_UPWARD_DYLIB",
    LC_VERSION_MIN_MACOSX: "LC_VERSION_MIN_MACOSX",
    LC_VERSION_MIN_IPHONEOS: "LC_VERSION_MIN_IPHONEOS",
    LC_FUNCTION_STARTS: "LC_FUNCTION_STARTS",
    LC_DYLD_ENVIRONMENT: "LC_DYLD_ENVIRONMENT",
    LC_MAIN: "LC_MAIN",
    LC_DATA_IN_CODE: "LC_DATA_IN_CODE",
    LC_SOURCE_VERSION: "LC_SOURCE_VERSION",
    LC_DYLIB_CODE_SIGN_DRS: "LC_DYLIB_CODE_SIGN_DRS",
    LC_ENCRYPTION_INFO_64: "LC_ENCRYPTION_INFO_64",
    LC_LINKER_OPTION: "LC_LINKER_OPTION",
    LC_LINKER_OPTIMIZATION_HINT: "LC_LINKER_OPTIMIZATION_HINT",
    LC_VERSION_MIN_TVOS: "LC_VERSION_MIN_TVOS",
    LC_VERSION_MIN_WATCHOS: "LC_VERSION_MIN_WATCHOS",
    LC_NOTE: "LC_NOTE",
    LC_BUILD_VERSION: "LC_BUILD_VERSION",
    LC_DYLD_EXPORTS_TRIE: "LC_DYLD_EXPORTS_TRIE",
    LC_DYLD_CHAINED_FIXUPS: "LC_DYLD_CHAINED_FIXUPS",
    LC_ATOM_INFO: "LC_ATOM_INFO",
}

FLAG_DESCRIPTIONS = {
    "MH_NOUNDEFS": "Не содержит неопределенных символов",
    "MH_INCRLINK": "Увеличенное связывание",
    "MH_DYLDLINK": "Динамически связанный",
    "MH_BINDATLOAD": "Связывание при загрузке",
    "MH_PREBOUND": "Предварительно связанный",
    "MH_SPLIT_SEGS": "Разделенные сегменты",
    "MH_LAZY_INIT": "Ленивая инициализация",
    "MH_TWOLEVEL": "Двухуровневое пространство имен",
    "MH_FORCE_FLAT": "Принудительное плоское пространство имен",
    "MH_NOMULTIDEFS": "Не допускает множественных определений",
    "MH_NOFIXPREBINDING": "Не исправляет предварительное связывание",
    "MH_PREBINDABLE": "Может быть предварительно связан",
    "MH_ALLMODSBOUND": "Все модули связаны",
    "MH_SUBSECTIONS_VIA_SYMBOLS": "Подсекции через символы",
    "MH_CANONICAL": "Канонический",
    "MH_WEAK_DEFINES": "Слабые определения",
    "MH_BINDS_TO_WEAK": "Связывается со слабыми символами",
    "MH_ALLOW_STACK_EXECUTION": "Разрешает выполнение стека",
    "MH_ROOT_SAFE": "Безопасен для root",
    "MH_SETUID_SAFE": "Безопасен для setuid",
    "MH_NO_REEXPORTED_DYLIBS": "Не реэкспортирует динамические библиотеки",
    "MH_PIE": "Position Independent Executable",
    "MH_DEAD_STRIPPABLE_DYLIB": "Может быть удалена, если не используется",
    "MH_HAS_TLV_DESCRIPTORS": "Содержит дескрипторы Thread Local Storage",
    "MH_NO_HEAP_EXECUTION": "Запрещает выполнение в куче",
    "MH_APP_EXTENSION_SAFE": "Безопасен для расширений приложений",
}


def load_command_name(opcode: int) -> str:
    """Имя load-команды по её коду; без бита LC_REQ_DYLD, если точного совпадения нет"""
    name = LOAD_COMMAND_NAMES.get(opcode) or LOAD_COMMAND_NAMES.get(opcode & ~LC_REQ_DYLD)
    return name or f"LC_UNKNOWN (0x{opcode:x})"


def format_version(version: int) -> str:
    """Версия X.Y.Z: 16 бит X, по 8 бит Y и Z"""
    return f"{version >> 16}.{(version >> 8) & 0xff}.{version & 0xff}"


def format_source_version(version: int) -> str:
    """Версия исходного кода в формате a.b.c.d.e"""
    a = version >> 40
    b = (version >> 30) & 0x3ff
    c = (version >> 20) & 0x3ff
    d = (version >> 10) & 0x3ff
    e = version & 0x3ff
    return f"{a}.{b}.{c}.{d}.{e}"
