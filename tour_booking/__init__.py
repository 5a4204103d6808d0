"""Paquete principal del motor de reconciliación de reservaciones y pagos."""
