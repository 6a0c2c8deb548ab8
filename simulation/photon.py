"""
PhotonEvent: one simulated photon exchange between Alice, Bob and (optionally)
Eve, plus the renderable frame the browser animates.

Polarization map:
  Rectilinear (+) basis:  0° = bit 0 = |0⟩,   90° = bit 1 = |1⟩
  Diagonal    (×) basis: 45° = bit 0 = |+⟩,  135° = bit 1 = |-⟩
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .random_source import RECTILINEAR, RandomSource, default_source


# Colours and glyphs used by the browser animation
POLARIZATION_COLOURS = {
    0.0:   "#74b9ff",   # →  blue
    90.0:  "#ff7675",   # ↑  red
    45.0:  "#55efc4",   # ↗  green
    135.0: "#fdcb6e",   # ↖  orange
}

POLARIZATION_SYMBOLS = {
    0.0:   "→",
    90.0:  "↑",
    45.0:  "↗",
    135.0: "↖",
}


def polarization(bit: int, basis: str) -> float:
    if basis == RECTILINEAR:
        return 0.0 if bit == 0 else 90.0
    return 45.0 if bit == 0 else 135.0


def quantum_state_label(bit: int, basis: str) -> str:
    """Dirac label of the state Alice prepares for *bit* in *basis*."""
    if basis == RECTILINEAR:
        return '|0⟩' if bit == 0 else '|1⟩'
    return '|+⟩' if bit == 0 else '|-⟩'


# ------------------------------------------------------------------ #
#  Data objects                                                        #
# ------------------------------------------------------------------ #
@dataclass(frozen=True)
class PhotonFrame:
    """What the rendering collaborator needs to draw one photon."""
    quantum_state: str
    sender_basis: str
    receiver_basis: str
    polarization: float
    colour: str
    symbol: str

    def as_tuple(self):
        return self.quantum_state, self.sender_basis, self.receiver_basis


@dataclass(frozen=True)
class PhotonEvent:
    """Complete, immutable history of a single photon."""
    index: int

    # Alice's side
    sender_bit: int
    sender_basis: str

    # Bob's side
    receiver_basis: str
    receiver_bit: int

    # Eve's side (only when the run has an eavesdropper)
    eavesdropper_present: bool = False
    eavesdropper_basis: Optional[str] = None
    eavesdropper_measurement: Optional[int] = None
    disturbed: bool = False

    # Sifting
    key_bit: Optional[int] = None

    @property
    def bases_match(self) -> bool:
        return self.sender_basis == self.receiver_basis

    @property
    def bits_match(self) -> bool:
        return self.bases_match and self.sender_bit == self.receiver_bit

    @property
    def is_error(self) -> bool:
        """Same-basis comparison where Alice and Bob disagree."""
        return self.bases_match and self.sender_bit != self.receiver_bit

    @property
    def quantum_state(self) -> str:
        return quantum_state_label(self.sender_bit, self.sender_basis)

    def frame(self) -> PhotonFrame:
        pol = polarization(self.sender_bit, self.sender_basis)
        return PhotonFrame(
            quantum_state=self.quantum_state,
            sender_basis=self.sender_basis,
            receiver_basis=self.receiver_basis,
            polarization=pol,
            colour=POLARIZATION_COLOURS.get(pol, "#ffffff"),
            symbol=POLARIZATION_SYMBOLS.get(pol, "?"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "sender_bit": self.sender_bit,
            "sender_basis": self.sender_basis,
            "receiver_basis": self.receiver_basis,
            "receiver_bit": self.receiver_bit,
            "eavesdropper_present": self.eavesdropper_present,
            "eavesdropper_basis": self.eavesdropper_basis,
            "eavesdropper_measurement": self.eavesdropper_measurement,
            "disturbed": self.disturbed,
            "bases_match": self.bases_match,
            "bits_match": self.bits_match,
            "key_bit": self.key_bit,
        }

    def __repr__(self) -> str:
        eve = ""
        if self.eavesdropper_present:
            eve = f", eve={self.eavesdropper_basis}{self.eavesdropper_measurement}"
        return (
            f"PhotonEvent(#{self.index}, alice={self.sender_basis}{self.sender_bit}"
            f"{eve}, bob={self.receiver_basis}{self.receiver_bit}, key={self.key_bit})"
        )


# ------------------------------------------------------------------ #
#  Generator                                                           #
# ------------------------------------------------------------------ #
def _measure(prepared_bit: int, prepared_basis: str, measurement_basis: str,
             source: RandomSource) -> int:
    """
    Matching bases give the prepared bit back; mismatched bases give a fresh
    50 / 50 outcome.
    """
    if prepared_basis == measurement_basis:
        return prepared_bit
    return source.random_bit()


def generate_photon_event(
    index: int,
    eavesdropper_present: bool = False,
    source: Optional[RandomSource] = None,
) -> PhotonEvent:
    """
    Simulates photon *index* and returns its event.

    Draw order is fixed: Alice's bit, Alice's basis, Bob's basis, then Eve's
    basis when she is present.  Measurement outcomes draw a fresh bit only
    when the bases involved differ.

    The key bit is Bob's sifted bit (``receiver_bit``) whenever Alice's and
    Bob's bases match.
    """
    source = source or default_source()

    sender_bit = source.random_bit()
    sender_basis = source.random_basis()
    receiver_basis = source.random_basis()

    eve_basis = None
    eve_bit = None
    disturbed = False

    if eavesdropper_present:
        # Eve intercepts, measures, and re-emits in her own basis
        eve_basis = source.random_basis()
        eve_bit = _measure(sender_bit, sender_basis, eve_basis, source)
        disturbed = eve_basis != sender_basis
        receiver_bit = _measure(eve_bit, eve_basis, receiver_basis, source)
    else:
        receiver_bit = _measure(sender_bit, sender_basis, receiver_basis, source)

    key_bit = receiver_bit if sender_basis == receiver_basis else None

    return PhotonEvent(
        index=index,
        sender_bit=sender_bit,
        sender_basis=sender_basis,
        receiver_basis=receiver_basis,
        receiver_bit=receiver_bit,
        eavesdropper_present=eavesdropper_present,
        eavesdropper_basis=eve_basis,
        eavesdropper_measurement=eve_bit,
        disturbed=disturbed,
        key_bit=key_bit,
    )
