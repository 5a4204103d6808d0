"""Casos de uso del motor de reservaciones y pagos."""
