"""Domain-specific exceptions

Messages are user-facing (Spanish) and safe to render directly.
"""


class DomainException(Exception):
    """Base exception for domain layer"""

    default_message = "Error inesperado"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DomainException):
    """Entity does not exist or is not owned by the caller's tenant"""

    default_message = "Recurso no encontrado"


class InvalidTransitionError(DomainException):
    """Requested status change is not reachable from the current status"""

    default_message = "Cambio de estado no permitido"


class NotReadyForDisbursementError(InvalidTransitionError):
    """Request is not accepted or signed yet"""

    default_message = "La solicitud aún no está lista para desembolso"


class ValidationError(DomainException):
    """Malformed or out-of-range input"""

    default_message = "Datos inválidos"


class PolicyViolationError(DomainException):
    """Business rule rejected the operation"""

    default_message = "La operación no cumple las políticas configuradas"


class ExposureLimitExceededError(PolicyViolationError):
    default_message = "La solicitud excede el límite de crédito configurado para este segmento"


class TenorLimitExceededError(PolicyViolationError):
    default_message = "El plazo de pago excede el máximo permitido para aprobación automática"


class NoBankAccountError(PolicyViolationError):
    default_message = "Registra una cuenta bancaria antes de solicitar el desembolso"


class InvalidBankAccountError(PolicyViolationError):
    default_message = "La cuenta seleccionada no pertenece a tu empresa"


class OfferExpiredError(PolicyViolationError):
    default_message = "La oferta expiró"


class ConflictError(DomainException):
    """Uniqueness or concurrent-update violation detected at the storage layer"""

    default_message = "La solicitud fue modificada por otra operación, intenta de nuevo"


class UpstreamFailureError(DomainException):
    """A downstream collaborator (notifications, e-signature) failed"""

    default_message = "Servicio externo no disponible"
