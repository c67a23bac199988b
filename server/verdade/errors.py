from __future__ import annotations


class VerificationError(Exception):
    """Base for failures that end a verification request with an error response."""

    status_code: int = 500
    default_message: str = "Erro ao processar sua solicitação. Tente novamente."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingInput(VerificationError):
    status_code = 400
    default_message = "Envie um texto, link ou imagem para verificar."


class MissingCredentials(VerificationError):
    status_code = 503
    default_message = "Verificador indisponível: OPENAI_API_KEY não configurada."


class UpstreamAuthError(VerificationError):
    status_code = 401
    default_message = "O serviço de IA recusou as credenciais configuradas."


class UpstreamPermissionDenied(UpstreamAuthError):
    status_code = 403
    default_message = "O serviço de IA negou acesso ao modelo configurado."


class UpstreamRateLimited(VerificationError):
    status_code = 429
    default_message = "Limite de uso do serviço de IA atingido. Tente novamente em instantes."


class UpstreamTransportError(VerificationError):
    status_code = 500


class InvalidRequest(VerificationError):
    status_code = 400
    default_message = "Requisição inválida. Envie um texto, link ou imagem (arquivo) para verificar."
