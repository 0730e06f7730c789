# tests/unit/verification/macho_builders.py
# Synthetic Mach-O images built with struct.
#
# build_thin_image() lays out:
#   mach header | segment commands | __LINKEDIT command | LC_CODE_SIGNATURE
#   | section bodies (table order) | __LINKEDIT body
# Section bodies never move when only the header flags or the __LINKEDIT
# body change, which is exactly what re-signing does.

import struct
from typing import List, Optional, Sequence, Tuple

CPU_TYPE_X86_64 = 0x01000007
CPU_TYPE_ARM64  = 0x0100000C
CPU_TYPE_I386   = 0x00000007

# (cpu_type, cpu_subtype) pairs for fat-table entries.
X86_64_ARCH = (CPU_TYPE_X86_64, 3)
ARM64_ARCH  = (CPU_TYPE_ARM64, 0)

# Header flags and __LINKEDIT body of a re-signed image.
SIGNED_IMAGE_KWARGS = {
    "flags": 0x00200085 | 0x02000000,
    "linkedit": b"\xfa\xde\x0c\xc0" + b"\x11" * 60,
}

LC_SEGMENT          = 0x1
LC_SEGMENT_64       = 0x19
LC_CODE_SIGNATURE   = 0x1D

# (segname, sectname, body bytes or None for zero-fill, declared size)
SectionDef = Tuple[str, str, Optional[bytes], int]


def section(segname: str, sectname: str, body: Optional[bytes], size: Optional[int] = None) -> SectionDef:
    if size is None:
        size = len(body) if body is not None else 0
    return (segname, sectname, body, size)


DEFAULT_SECTIONS: List[SectionDef] = [
    section("__TEXT", "__text", b"\x55\x48\x89\xe5\x31\xc0\x5d\xc3" * 8),
    section("__TEXT", "__cstring", b"hello, world\x00"),
    section("__DATA", "__data", b"\x01\x02\x03\x04" * 4),
    section("__DATA", "__bss", None, 64),
    section("__DATA", "__empty", b""),
]


def _name(value: str) -> bytes:
    return value.encode("ascii").ljust(16, b"\x00")


def build_thin_image(
    sections:    Sequence[SectionDef] = DEFAULT_SECTIONS,
    linkedit:    bytes = b"\xfa\xde\x0c\xc0" + b"\x00" * 28,
    is_64:       bool = True,
    order:       str = "<",
    cpu_type:    int = CPU_TYPE_X86_64,
    cpu_subtype: int = 3,
    flags:       int = 0x00200085,
    linkedit_sections: Sequence[SectionDef] = (),
) -> bytes:
    """Return the bytes of a thin Mach-O image."""
    header_size = 32 if is_64 else 28
    seg_size    = 72 if is_64 else 56
    sect_size   = 80 if is_64 else 68
    seg_cmd     = LC_SEGMENT_64 if is_64 else LC_SEGMENT

    # Group sections by segment, preserving first-seen order.
    segments: List[Tuple[str, List[SectionDef]]] = []
    for sect_def in sections:
        if not segments or segments[-1][0] != sect_def[0]:
            segments.append((sect_def[0], []))
        segments[-1][1].append(sect_def)
    segments.append(("__LINKEDIT", list(linkedit_sections)))

    sizeofcmds = sum(seg_size + len(s) * sect_size for _, s in segments) + 16
    cursor = header_size + sizeofcmds

    # Assign body offsets, one list per segment.
    bodies = b""
    offsets: List[List[int]] = []
    for segname, defs in segments[:-1]:
        seg_offsets = []
        for sect_def in defs:
            if sect_def[2] is None:
                seg_offsets.append(0)
            else:
                seg_offsets.append(cursor + len(bodies))
                bodies += sect_def[2]
        offsets.append(seg_offsets)
    linkedit_off = cursor + len(bodies)
    offsets.append([linkedit_off] * len(linkedit_sections))

    commands = b""
    for seg_index, (segname, defs) in enumerate(segments):
        if segname == "__LINKEDIT":
            fileoff, filesize = linkedit_off, len(linkedit)
        else:
            fileoff, filesize = 0, 0
        cmdsize = seg_size + len(defs) * sect_size
        if is_64:
            commands += struct.pack(
                order + "II16sQQQQiiII",
                seg_cmd, cmdsize, _name(segname), 0, 0, fileoff, filesize, 7, 5, len(defs), 0,
            )
        else:
            commands += struct.pack(
                order + "II16sIIIIiiII",
                seg_cmd, cmdsize, _name(segname), 0, 0, fileoff, filesize, 7, 5, len(defs), 0,
            )
        for sect_def, offset in zip(defs, offsets[seg_index]):
            sect_seg, sectname, _, size = sect_def
            if is_64:
                commands += struct.pack(
                    order + "16s16sQQIIIIIIII",
                    _name(sectname), _name(sect_seg), 0, size, offset, 0, 0, 0, 0, 0, 0, 0,
                )
            else:
                commands += struct.pack(
                    order + "16s16sIIIIIIIII",
                    _name(sectname), _name(sect_seg), 0, size, offset, 0, 0, 0, 0, 0, 0,
                )
    commands += struct.pack(order + "IIII", LC_CODE_SIGNATURE, 16, linkedit_off, len(linkedit))

    magic = 0xFEEDFACF if is_64 else 0xFEEDFACE
    header = struct.pack(
        order + "IiiIIII",
        magic, cpu_type, cpu_subtype, 2, len(segments) + 1, sizeofcmds, flags,
    )
    if is_64:
        header += struct.pack(order + "I", 0)

    assert len(commands) == sizeofcmds
    return header + commands + bodies + linkedit


def build_fat_image(slices: Sequence[Tuple[int, int, bytes]], align: int = 64, is_64: bool = False) -> bytes:
    """Return a fat container holding the given (cpu_type, cpu_subtype, image) slices."""
    arch_size = 32 if is_64 else 20
    table_end = 8 + arch_size * len(slices)

    def _align(n: int) -> int:
        return (n + align - 1) // align * align

    header = struct.pack(">II", 0xCAFEBABF if is_64 else 0xCAFEBABE, len(slices))
    table = b""
    cursor = _align(table_end)
    placed = []
    for cpu_type, cpu_subtype, image in slices:
        placed.append((cpu_type, cpu_subtype, cursor, image))
        cursor = _align(cursor + len(image))
    for cpu_type, cpu_subtype, offset, image in placed:
        if is_64:
            table += struct.pack(">iiQQII", cpu_type, cpu_subtype, offset, len(image), 6, 0)
        else:
            table += struct.pack(">iiIII", cpu_type, cpu_subtype, offset, len(image), 6)

    out = bytearray(header + table)
    for _, _, offset, image in placed:
        out += b"\x00" * (offset - len(out))
        out += image
    return bytes(out)


def universal_slices(
    archs: Sequence[Tuple[int, int]] = (X86_64_ARCH, ARM64_ARCH),
    **image_kwargs,
) -> List[Tuple[int, int, bytes]]:
    """Return build_fat_image() slices whose headers declare their fat-table arch."""
    return [
        (cpu_type, cpu_subtype, build_thin_image(cpu_type=cpu_type, cpu_subtype=cpu_subtype, **image_kwargs))
        for cpu_type, cpu_subtype in archs
    ]


def flip_byte(data: bytes, offset: int) -> bytes:
    out = bytearray(data)
    out[offset] ^= 0xFF
    return bytes(out)


