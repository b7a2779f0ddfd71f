"""Routing rules that pass whole slots of group or private calls."""

from abc import ABC, abstractmethod
from enum import Enum, auto

from dmrgw.frame import FLCO, DMRFrame
from dmrgw.log import LogLevel, log


class ProcessResult(Enum):
    """Outcome of offering a frame to a rule."""

    UNMATCHED = auto()
    MATCHED = auto()
    IGNORED = auto()


class _SlotRule(ABC):
    _kind = ""

    def __init__(self, name: str, slot: int) -> None:
        if slot not in (1, 2):
            raise ValueError(f"Slot must be 1 or 2, got {slot}")
        self.name = name
        self.slot = slot

    @property
    @abstractmethod
    def _flco(self) -> FLCO:
        """The call type this rule passes."""

    def process(self, data: DMRFrame, trace: bool) -> ProcessResult:
        """MATCHED for frames of this rule's call type on its slot, else UNMATCHED."""
        matched = data.flco == self._flco and data.slot_no == self.slot

        if trace:
            outcome = "matched" if matched else "not matched"
            log(LogLevel.DEBUG, f"Rule Trace,\t{self._kind} {self.name} Slot={self.slot}: {outcome}")

        return ProcessResult.MATCHED if matched else ProcessResult.UNMATCHED


class PassAllPC(_SlotRule):
    """Passes every private call on one slot unchanged."""

    _kind = "PassAllPC"

    @property
    def _flco(self) -> FLCO:
        return FLCO.USER_USER

    def process(self, data: DMRFrame, trace: bool) -> ProcessResult:
        """MATCHED for private calls on this rule's slot, else UNMATCHED."""
        return super().process(data, trace)


class PassAllTG(_SlotRule):
    """Passes every talk group call on one slot unchanged."""

    _kind = "PassAllTG"

    @property
    def _flco(self) -> FLCO:
        return FLCO.GROUP

    def process(self, data: DMRFrame, trace: bool) -> ProcessResult:
        """MATCHED for group calls on this rule's slot, else UNMATCHED."""
        return super().process(data, trace)