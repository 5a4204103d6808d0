"""
Capa de Aplicación - Motor de reservaciones y pagos.

Esta capa contiene los casos de uso e interfaces (puertos).
Orquesta la lógica de negocio y define los contratos con la infraestructura.

Estructura:
- use_cases/: Casos de uso del sistema
- interfaces/: Puertos (contratos para adaptadores)
- results.py: Resultados estructurados de las operaciones públicas
- notifications.py: Envío de notificaciones en segundo plano
"""
