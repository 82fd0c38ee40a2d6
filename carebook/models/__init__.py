"""Database models."""

from carebook.models.appointments import appointments
from carebook.models.doctors import doctors
from carebook.models.metadata import metadata
from carebook.models.patients import patients

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "patients",
]
