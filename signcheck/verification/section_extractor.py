# signcheck/verification/section_extractor.py
# SectionExtractor -- reads the Mach-O load-command table and returns the
# file-backed sections whose content survives re-signing unchanged.
#
# Exclusion rules, applied in order:
#   1. Sections of the signature segment (__LINKEDIT). Signing rewrites it
#      wholesale: signature blob, symbol and string tables.
#   2. Sections with file offset 0. These are zero-fill (__bss, __common);
#      reading at offset 0 would alias the image header.
#   3. Sections with size 0.
# Table order is preserved. Hashing depends on it.
#
# Fat binaries are parsed slice by slice. Section offsets inside a slice are
# relative to the slice; ExecutableSection.file_offset is absolute.
# Each slice header must declare the cputype and cpusubtype its fat-table
# entry claims; the reported slice identity is the fat-table one.
#
# All structures are parsed with struct. Fat headers are big-endian;
# thin headers are read in the byte order announced by their magic.

import logging
import os
import struct
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from signcheck.exceptions import ComparatorIOError, SectionExtractionError
from signcheck.verification.data_models.executable_section import (
    ArchitectureSlice,
    ExecutableSection,
)

logger = logging.getLogger(__name__)

# Thin image magics, as read big-endian from the first four bytes.
MH_MAGIC    = 0xFEEDFACE
MH_CIGAM    = 0xCEFAEDFE
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM_64 = 0xCFFAEDFE

# Fat header magics, as read big-endian.
FAT_MAGIC    = 0xCAFEBABE
FAT_MAGIC_64 = 0xCAFEBABF

LC_SEGMENT    = 0x1
LC_SEGMENT_64 = 0x19

# Low 24 bits of cpusubtype; the high byte carries capability flags.
CPU_SUBTYPE_MASK = 0x00FFFFFF

_MACH_HEADER_SIZE    = 28
_MACH_HEADER_64_SIZE = 32
_FAT_HEADER_SIZE     = 8
_FAT_ARCH_SIZE       = 20
_FAT_ARCH_64_SIZE    = 32
_LOAD_COMMAND_SIZE   = 8

# (segment command format, segment command size, section format, section size)
_SEGMENT_LAYOUTS = {
    LC_SEGMENT:    ("II16sIIIIiiII", 56, "16s16sIIIIIIIII", 68),
    LC_SEGMENT_64: ("II16sQQQQiiII", 72, "16s16sQQIIIIIIII", 80),
}


def _cstring(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _thin_byte_order(head: bytes) -> Tuple[str, bool]:
    """
    Return (struct byte order prefix, is_64) for a thin Mach-O header.
    Raises ValueError if head does not start with a thin Mach-O magic.
    """
    magic = struct.unpack(">I", head[:4])[0]
    if magic == MH_MAGIC:
        return ">", False
    if magic == MH_MAGIC_64:
        return ">", True
    if magic == MH_CIGAM:
        return "<", False
    if magic == MH_CIGAM_64:
        return "<", True
    raise ValueError(f"not a Mach-O image (magic 0x{magic:08x})")


class SectionExtractor:
    """
    Produces the ordered comparable sections of a Mach-O image.

    Methods:
      extract_slices(path)   -> tuple of ArchitectureSlice
      extract_sections(path) -> tuple of ExecutableSection, all slices
                                concatenated in fat-table order

    Raises SectionExtractionError if the table cannot be parsed or a slice
    has no comparable sections. Raises ComparatorIOError if the file cannot
    be opened.
    """

    def __init__(self, config: ComparatorConfig = DEFAULT_COMPARATOR_CONFIG):
        self._config = config

    def extract_sections(self, path: Union[str, Path]) -> Tuple[ExecutableSection, ...]:
        sections: List[ExecutableSection] = []
        for arch_slice in self.extract_slices(path):
            sections.extend(arch_slice.sections)
        return tuple(sections)

    def extract_slices(self, path: Union[str, Path]) -> Tuple[ArchitectureSlice, ...]:
        try:
            with open(path, "rb") as f:
                file_size = os.fstat(f.fileno()).st_size
                head = f.read(4)
                if len(head) < 4:
                    raise SectionExtractionError(str(path), "file shorter than a magic number")

                if struct.unpack("<I", head)[0] in self._fat_magics():
                    slices = self._parse_fat(f, path, file_size)
                else:
                    slices = (self._parse_thin(f, path, 0, file_size),)
        except OSError as exc:
            raise ComparatorIOError(str(path), f"cannot read image: {exc}") from exc

        logger.debug(
            "%s: %d slice(s), %d comparable section(s)",
            path, len(slices), sum(len(s.sections) for s in slices),
        )
        return slices

    # ------------------------------------------------------------------
    # Fat container
    # ------------------------------------------------------------------

    def _fat_magics(self) -> frozenset:
        # 64-bit fat headers share the layout family; accept them whenever
        # the configured fat magics are accepted.
        return self._config.fat_magics | {0xBFBAFECA, FAT_MAGIC_64}

    def _parse_fat(
        self,
        f:         BinaryIO,
        path:      Union[str, Path],
        file_size: int,
    ) -> Tuple[ArchitectureSlice, ...]:
        f.seek(0)
        header = f.read(_FAT_HEADER_SIZE)
        if len(header) < _FAT_HEADER_SIZE:
            raise SectionExtractionError(str(path), "truncated fat header")

        order = ">"
        magic = struct.unpack(">I", header[:4])[0]
        if magic not in (FAT_MAGIC, FAT_MAGIC_64):
            order = "<"
            magic = struct.unpack("<I", header[:4])[0]
        is_64 = magic == FAT_MAGIC_64
        nfat_arch = struct.unpack(order + "I", header[4:8])[0]

        if nfat_arch == 0:
            raise SectionExtractionError(str(path), "fat header declares no architectures")
        if nfat_arch > self._config.max_fat_arches:
            raise SectionExtractionError(
                str(path),
                f"fat header declares {nfat_arch} architectures "
                f"(limit {self._config.max_fat_arches})",
            )

        arch_size = _FAT_ARCH_64_SIZE if is_64 else _FAT_ARCH_SIZE
        arch_fmt  = order + ("iiQQII" if is_64 else "iiIII")
        table = f.read(arch_size * nfat_arch)
        if len(table) < arch_size * nfat_arch:
            raise SectionExtractionError(str(path), "truncated fat architecture table")

        table_end = _FAT_HEADER_SIZE + arch_size * nfat_arch
        slices = []
        for index in range(nfat_arch):
            fields = struct.unpack_from(arch_fmt, table, index * arch_size)
            offset, size = fields[2], fields[3]
            if offset < table_end or size == 0 or offset + size > file_size:
                raise SectionExtractionError(
                    str(path),
                    f"fat slice {index} (offset {offset}, size {size}) "
                    f"lies outside the file (size {file_size})",
                )
            slices.append(
                self._parse_thin(f, path, offset, size, arch=(index, fields[0], fields[1]))
            )
        return tuple(slices)

    # ------------------------------------------------------------------
    # Thin image
    # ------------------------------------------------------------------

    def _parse_thin(
        self,
        f:     BinaryIO,
        path:  Union[str, Path],
        base:  int,
        limit: int,
        arch:  Optional[Tuple[int, int, int]] = None,
    ) -> ArchitectureSlice:
        """
        Parse one thin image starting at base and spanning limit bytes.
        arch is (fat index, cputype, cpusubtype) when the image is a fat slice.
        """
        f.seek(base)
        head = f.read(_MACH_HEADER_64_SIZE)
        if len(head) < _MACH_HEADER_SIZE:
            raise SectionExtractionError(str(path), f"truncated Mach-O header at offset {base}")
        try:
            order, is_64 = _thin_byte_order(head)
        except ValueError as exc:
            raise SectionExtractionError(str(path), f"{exc} at offset {base}") from exc

        header_size = _MACH_HEADER_64_SIZE if is_64 else _MACH_HEADER_SIZE
        if len(head) < header_size:
            raise SectionExtractionError(str(path), f"truncated Mach-O header at offset {base}")

        _, cpu_type, cpu_subtype, _filetype, ncmds, sizeofcmds, _flags = struct.unpack_from(
            order + "IiiIIII", head, 0
        )
        if arch is not None:
            index, arch_cpu_type, arch_cpu_subtype = arch
            if (
                arch_cpu_type != cpu_type
                or (arch_cpu_subtype & CPU_SUBTYPE_MASK) != (cpu_subtype & CPU_SUBTYPE_MASK)
            ):
                raise SectionExtractionError(
                    str(path),
                    f"fat slice {index} labelled cputype {arch_cpu_type}/subtype "
                    f"{arch_cpu_subtype} but its header declares cputype {cpu_type}/subtype "
                    f"{cpu_subtype}",
                )
            cpu_type, cpu_subtype = arch_cpu_type, arch_cpu_subtype
        if header_size + sizeofcmds > limit:
            raise SectionExtractionError(
                str(path),
                f"load commands ({sizeofcmds} bytes) exceed image size {limit}",
            )

        f.seek(base + header_size)
        commands = f.read(sizeofcmds)
        if len(commands) < sizeofcmds:
            raise SectionExtractionError(str(path), "truncated load command table")

        sections = self._parse_load_commands(path, commands, ncmds, order, base, limit)
        if not sections:
            raise SectionExtractionError(str(path), "no comparable sections")

        return ArchitectureSlice(
            cpu_type=cpu_type,
            cpu_subtype=cpu_subtype,
            offset=base,
            size=limit,
            sections=tuple(sections),
        )

    def _parse_load_commands(
        self,
        path:     Union[str, Path],
        commands: bytes,
        ncmds:    int,
        order:    str,
        base:     int,
        limit:    int,
    ) -> List[ExecutableSection]:
        sections: List[ExecutableSection] = []
        signature_segment = self._config.signature_segment
        cursor = 0

        for index in range(ncmds):
            if cursor + _LOAD_COMMAND_SIZE > len(commands):
                raise SectionExtractionError(
                    str(path), f"load command {index} starts past the command table"
                )
            cmd, cmdsize = struct.unpack_from(order + "II", commands, cursor)
            if cmdsize < _LOAD_COMMAND_SIZE or cursor + cmdsize > len(commands):
                raise SectionExtractionError(
                    str(path), f"load command {index} has invalid size {cmdsize}"
                )

            layout = _SEGMENT_LAYOUTS.get(cmd)
            if layout is not None:
                seg_fmt, seg_size, sect_fmt, sect_size = layout
                if cmdsize < seg_size:
                    raise SectionExtractionError(
                        str(path), f"segment command {index} is truncated"
                    )
                seg_fields = struct.unpack_from(order + seg_fmt, commands, cursor)
                segname = _cstring(seg_fields[2])
                nsects  = seg_fields[9]
                if seg_size + nsects * sect_size > cmdsize:
                    raise SectionExtractionError(
                        str(path),
                        f"segment {segname} declares {nsects} sections "
                        f"but its command holds {cmdsize} bytes",
                    )

                for sect_index in range(nsects):
                    sect_fields = struct.unpack_from(
                        order + sect_fmt, commands, cursor + seg_size + sect_index * sect_size
                    )
                    sectname      = _cstring(sect_fields[0])
                    sect_segname  = _cstring(sect_fields[1])
                    size          = sect_fields[3]
                    offset        = sect_fields[4]

                    if segname == signature_segment or sect_segname == signature_segment:
                        continue
                    if offset == 0:
                        continue
                    if size == 0:
                        continue
                    if base != 0 and offset + size > limit:
                        raise SectionExtractionError(
                            str(path),
                            f"section {sect_segname}.{sectname} extends past its "
                            f"slice (offset {offset}, size {size}, slice size {limit})",
                        )

                    sections.append(ExecutableSection(
                        segment_name=sect_segname or segname,
                        section_name=sectname,
                        file_offset=base + offset,
                        byte_size=size,
                    ))

            cursor += cmdsize

        return sections
