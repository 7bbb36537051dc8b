"""
Domain errors for the scheduling core.

Use cases return these inside ``Err(...)`` instead of raising them. Each error
carries a stable ``code`` for callers and a ``kind`` that the HTTP layer maps
to a status code.
"""

from typing import Optional

NOT_FOUND = "not_found"
CONFLICT = "conflict"
INVALID_STATE = "invalid_state"
VALIDATION = "validation"


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    kind = VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# Not found


class NotFoundError(DomainError):
    kind = NOT_FOUND


class SalonNotFoundError(NotFoundError):
    code = "SALON_NOT_FOUND"

    def __init__(self, salon_id: Optional[str] = None):
        super().__init__(f"Salão {salon_id} não encontrado" if salon_id else "Salão não encontrado")


class CustomerNotFoundError(NotFoundError):
    code = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: Optional[str] = None):
        super().__init__(f"Cliente {customer_id} não encontrado" if customer_id else "Cliente não encontrado")


class ProfessionalNotFoundError(NotFoundError):
    code = "PROFESSIONAL_NOT_FOUND"

    def __init__(self, professional_id: Optional[str] = None):
        super().__init__(
            f"Profissional {professional_id} não encontrado" if professional_id else "Profissional não encontrado"
        )


class ServiceNotFoundError(NotFoundError):
    code = "SERVICE_NOT_FOUND"

    def __init__(self, service_id: Optional[str] = None):
        super().__init__(f"Serviço {service_id} não encontrado" if service_id else "Serviço não encontrado")


class AppointmentNotFoundError(NotFoundError):
    code = "APPOINTMENT_NOT_FOUND"

    def __init__(self, appointment_id: Optional[str] = None):
        super().__init__(
            f"Agendamento {appointment_id} não encontrado" if appointment_id else "Agendamento não encontrado"
        )


# Conflict


class AppointmentConflictError(DomainError):
    code = "APPOINTMENT_CONFLICT"
    kind = CONFLICT

    def __init__(self, message: str = "Já existe um agendamento neste horário"):
        super().__init__(message)


# Invalid state


class InvalidStateError(DomainError):
    kind = INVALID_STATE


class ProfessionalCannotPerformServiceError(InvalidStateError):
    code = "PROFESSIONAL_CANNOT_PERFORM_SERVICE"

    def __init__(self, professional_name: Optional[str] = None, service_name: Optional[str] = None):
        if professional_name and service_name:
            message = f'O profissional "{professional_name}" não realiza o serviço "{service_name}"'
        else:
            message = "O profissional não realiza este serviço"
        super().__init__(message)


class ProfessionalInactiveError(InvalidStateError):
    code = "PROFESSIONAL_INACTIVE"

    def __init__(self, professional_name: Optional[str] = None):
        super().__init__(
            f'O profissional "{professional_name}" não está ativo'
            if professional_name
            else "O profissional não está ativo"
        )


class ServiceNotBookableError(InvalidStateError):
    code = "SERVICE_NOT_BOOKABLE"

    def __init__(self, service_name: Optional[str] = None):
        super().__init__(
            f'O serviço "{service_name}" não está disponível para agendamento'
            if service_name
            else "O serviço não está disponível para agendamento"
        )


class PastAppointmentError(InvalidStateError):
    code = "PAST_APPOINTMENT"

    def __init__(self, message: str = "Não é possível modificar um agendamento passado"):
        super().__init__(message)


# Validation


class InvalidPhoneError(DomainError):
    code = "INVALID_PHONE"

    def __init__(self, phone: Optional[str] = None):
        super().__init__(f"Telefone inválido: {phone}" if phone else "O telefone informado é inválido")


class InvalidDateError(DomainError):
    code = "INVALID_DATE"

    def __init__(self, value: Optional[str] = None):
        super().__init__(f"Data inválida: {value}" if value else "A data informada é inválida")


class RequiredFieldError(DomainError):
    code = "REQUIRED_FIELD"

    def __init__(self, field_name: str):
        super().__init__(f'O campo "{field_name}" é obrigatório')


class OutOfRangeError(DomainError):
    code = "OUT_OF_RANGE"

    def __init__(self, field_name: str, minimum: Optional[int] = None, maximum: Optional[int] = None):
        if minimum is not None and maximum is not None:
            message = f'O valor de "{field_name}" deve estar entre {minimum} e {maximum}'
        elif minimum is not None:
            message = f'O valor de "{field_name}" deve ser maior ou igual a {minimum}'
        elif maximum is not None:
            message = f'O valor de "{field_name}" deve ser menor ou igual a {maximum}'
        else:
            message = f'O valor de "{field_name}" está fora do intervalo permitido'
        super().__init__(message)
