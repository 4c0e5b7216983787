"""Virtual-to-physical address translation for the simulated machine.

Two schemes are supported, never both at once:

* a linear page table, indexed by virtual page number;
* a software-loaded translation lookaside buffer (TLB), searched
  associatively for an entry with the right virtual page number.

Simulated memory is little-endian. Translation failures raise
:class:`MachineException` carrying the :class:`ExceptionType` that the
hardware would signal.
"""

from __future__ import annotations

import enum
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

__all__ = [
    "ExceptionType",
    "MachineException",
    "TranslationEntry",
    "Memory",
    "word_to_host",
    "short_to_host",
    "word_to_machine",
    "short_to_machine",
]

_log = logging.getLogger(__name__)

_HOST_IS_BIG_ENDIAN = sys.byteorder == "big"


class ExceptionType(enum.Enum):
    """Kinds of exception the simulated CPU can raise."""

    NO_EXCEPTION = 0
    SYSCALL_EXCEPTION = 1
    PAGE_FAULT_EXCEPTION = 2
    READ_ONLY_EXCEPTION = 3
    BUS_ERROR_EXCEPTION = 4
    ADDRESS_ERROR_EXCEPTION = 5
    OVERFLOW_EXCEPTION = 6
    ILLEGAL_INSTR_EXCEPTION = 7


class MachineException(Exception):
    """A memory access failed with a hardware exception."""

    def __init__(self, exception_type: ExceptionType, virt_addr: int) -> None:
        super().__init__(f"{exception_type.name} at virtual address 0x{virt_addr & 0xFFFFFFFF:x}")
        self.exception_type = exception_type
        self.virt_addr = virt_addr


@dataclass
class TranslationEntry:
    """One page-table or TLB entry mapping a virtual page to a physical frame."""

    virtual_page: int = 0
    physical_page: int = 0
    valid: bool = False
    read_only: bool = False
    use: bool = False
    dirty: bool = False


def word_to_host(word: int) -> int:
    """Convert a 32-bit word from machine (little-endian) to host order."""
    word &= 0xFFFFFFFF
    if _HOST_IS_BIG_ENDIAN:
        return int.from_bytes(word.to_bytes(4, "little"), "big")
    return word


def short_to_host(shortword: int) -> int:
    """Convert a 16-bit value from machine (little-endian) to host order."""
    shortword &= 0xFFFF
    if _HOST_IS_BIG_ENDIAN:
        return int.from_bytes(shortword.to_bytes(2, "little"), "big")
    return shortword


def word_to_machine(word: int) -> int:
    """Convert a 32-bit word from host to machine order."""
    return word_to_host(word)


def short_to_machine(shortword: int) -> int:
    """Convert a 16-bit value from host to machine order."""
    return short_to_host(shortword)


_VALID_SIZES = (1, 2, 4)


class Memory:
    """Physical memory of the simulated machine plus its translation hardware.

    Exactly one of ``page_table`` and ``tlb`` must be in use whenever an
    address is translated.
    """

    def __init__(
        self,
        num_phys_pages: int,
        page_size: int,
        page_table: Optional[Sequence[TranslationEntry]] = None,
        tlb: Optional[Sequence[TranslationEntry]] = None,
    ) -> None:
        if num_phys_pages <= 0 or page_size <= 0:
            raise ValueError("memory must have a positive number of pages of positive size")
        self.num_phys_pages = num_phys_pages
        self.page_size = page_size
        self.main_memory = bytearray(num_phys_pages * page_size)
        self.page_table: Optional[List[TranslationEntry]] = (
            list(page_table) if page_table is not None else None
        )
        self.tlb: Optional[List[TranslationEntry]] = list(tlb) if tlb is not None else None

    @property
    def memory_size(self) -> int:
        """Total size of physical memory in bytes."""
        return len(self.main_memory)

    def _lookup(self, vpn: int, virt_addr: int) -> TranslationEntry:
        if self.tlb is None:
            assert self.page_table is not None
            if vpn >= len(self.page_table):
                _log.debug(
                    "virtual page # %d too large for page table size %d",
                    vpn,
                    len(self.page_table),
                )
                raise MachineException(ExceptionType.ADDRESS_ERROR_EXCEPTION, virt_addr)
            entry = self.page_table[vpn]
            if not entry.valid:
                _log.debug("virtual page # %d is invalid", vpn)
                raise MachineException(ExceptionType.PAGE_FAULT_EXCEPTION, virt_addr)
            return entry
        found = next((e for e in self.tlb if e.valid and e.virtual_page == vpn), None)
        if found is None:
            _log.debug("no valid TLB entry found for virtual page %d", vpn)
            raise MachineException(ExceptionType.PAGE_FAULT_EXCEPTION, virt_addr)
        return found

    def translate(self, virt_addr: int, size: int, writing: bool = False) -> int:
        """Translate ``virt_addr`` into a physical address.

        Sets the use bit (and the dirty bit when ``writing``) of the entry
        used. Raises :class:`MachineException` on alignment errors, missing
        or invalid mappings, writes to read-only pages and bad frames.
        """
        _log.debug("Translate 0x%x, %s", virt_addr & 0xFFFFFFFF, "write" if writing else "read")

        if (size == 4 and virt_addr & 0x3) or (size == 2 and virt_addr & 0x1):
            _log.debug("alignment problem at %d, size %d", virt_addr, size)
            raise MachineException(ExceptionType.ADDRESS_ERROR_EXCEPTION, virt_addr)

        if self.tlb is not None and self.page_table is not None:
            raise ValueError("We have both a TLB and a page table!")
        if self.tlb is None and self.page_table is None:
            raise ValueError("We don't have a TLB nor a page table!")

        unsigned_addr = virt_addr & 0xFFFFFFFF
        vpn, offset = divmod(unsigned_addr, self.page_size)

        entry = self._lookup(vpn, virt_addr)

        if entry.read_only and writing:
            _log.debug("%d mapped read-only", virt_addr)
            raise MachineException(ExceptionType.READ_ONLY_EXCEPTION, virt_addr)

        page_frame = entry.physical_page
        if not 0 <= page_frame < self.num_phys_pages:
            _log.debug("frame %d > %d", page_frame, self.num_phys_pages)
            raise MachineException(ExceptionType.BUS_ERROR_EXCEPTION, virt_addr)

        entry.use = True
        if writing:
            entry.dirty = True

        phys_addr = page_frame * self.page_size + offset
        if phys_addr < 0 or phys_addr + size > self.memory_size:
            raise RuntimeError(
                f"Invalid physical address {phys_addr} (memory size is {self.memory_size})"
            )
        _log.debug("phys addr = 0x%x", phys_addr)
        return phys_addr

    def read_mem(self, virt_addr: int, size: int) -> int:
        """Read ``size`` (1, 2 or 4) bytes of virtual memory.

        Bytes and half-words are returned unsigned; words are returned as
        signed 32-bit integers.
        """
        if size not in _VALID_SIZES:
            raise ValueError(f"Invalid size {size}")
        _log.debug("Reading VA 0x%x, size %d", virt_addr & 0xFFFFFFFF, size)
        phys = self.translate(virt_addr, size, False)
        raw = bytes(self.main_memory[phys : phys + size])
        value = int.from_bytes(raw, "little", signed=(size == 4))
        _log.debug("value read = %08x", value & 0xFFFFFFFF)
        return value

    def write_mem(self, virt_addr: int, size: int, value: int) -> None:
        """Write the low ``size`` (1, 2 or 4) bytes of ``value`` to virtual memory."""
        if size not in _VALID_SIZES:
            raise ValueError(f"Invalid size {size}")
        _log.debug(
            "Writing VA 0x%x, size %d, value 0x%x",
            virt_addr & 0xFFFFFFFF,
            size,
            value & 0xFFFFFFFF,
        )
        phys = self.translate(virt_addr, size, True)
        mask = (1 << (8 * size)) - 1
        self.main_memory[phys : phys + size] = (value & mask).to_bytes(size, "little")