"""Value Object BookingCode - código público de reservación."""

import secrets
import string
from dataclasses import dataclass


@dataclass(frozen=True)
class BookingCode:
    """
    Código único e inmutable de una reservación.

    Formato: prefijo RES- seguido de 8 caracteres alfanuméricos (ej: RES-A1B2C3D4).
    """

    value: str

    PREFIX = "RES-"
    CODE_LENGTH = 8
    ALLOWED_CHARS = string.ascii_uppercase + string.digits

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("booking_code no puede estar vacío")

        if len(self.value) > 50:
            raise ValueError(f"booking_code excede 50 caracteres: {len(self.value)}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls) -> "BookingCode":
        code = "".join(secrets.choice(cls.ALLOWED_CHARS) for _ in range(cls.CODE_LENGTH))
        return cls(value=f"{cls.PREFIX}{code}")

    @classmethod
    def from_string(cls, value: str) -> "BookingCode":
        return cls(value=value.upper().strip())
