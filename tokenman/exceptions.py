"""
Tokenman Exceptions — Exceções específicas do Tokenman.

Todas as exceções seguem o padrão:
- code: Código máquina do erro (ex.: "shop_inactive", "invalid_distance")
- message: Mensagem legível para humanos
- context: Dados adicionais sobre o erro

Serviços levantam estas exceções; só a camada de API as traduz para HTTP.
"""

from __future__ import annotations


class TokenmanError(Exception):
    """
    Classe base para todas as exceções do Tokenman.

    Attributes:
        code: Código máquina do erro
        message: Mensagem legível para humanos
        context: Dados adicionais sobre o erro
    """

    default_code = "error"

    def __init__(self, code: str | None = None, message: str = "", context: dict | None = None):
        self.code = code or self.default_code
        self.message = message
        self.context = context or {}
        super().__init__(message)


class Unauthorized(TokenmanError):
    """
    Chamador sem identidade válida ou sem permissão para a operação.

    Codes: "unauthorized" (sem identidade), "forbidden" (política do store negou)
    """

    default_code = "unauthorized"


class ShopNotFound(TokenmanError):
    """
    Loja não encontrada no diretório.

    Codes: "shop_not_found"
    """

    default_code = "shop_not_found"


class ShopInactive(TokenmanError):
    """
    Loja existe mas não aceita novas senhas.

    Codes: "shop_inactive"
    """

    default_code = "shop_inactive"


class InvalidInput(TokenmanError):
    """
    Entrada malformada (distância, coordenadas, tempo de serviço, backlog).

    Codes: "invalid_distance", "invalid_location", "invalid_service_time",
    "invalid_backlog", "invalid_clock", "invalid_payload"
    """

    default_code = "invalid_input"


class TokenCreationFailed(TokenmanError):
    """
    Não foi possível gravar a senha.

    Codes: "number_exhausted" (colisões esgotaram as tentativas),
    "store_write_failed" (falha de escrita no store)
    """

    default_code = "token_creation_failed"


class TokenNotFound(TokenmanError):
    """
    Senha inexistente ou invisível para o ator.

    Codes: "token_not_found"
    """

    default_code = "token_not_found"


class InvalidTransition(TokenmanError):
    """
    Erro de transição de status inválida.

    Raised quando tenta transicionar Token para um status não permitido
    pela tabela de transições.

    Codes: "invalid_transition", "terminal_status", "concurrent_modification"
    """

    default_code = "invalid_transition"


class Timeout(TokenmanError):
    """
    Chamada a um colaborador (diretório, store) excedeu o prazo.

    Codes: "timeout"
    """

    default_code = "timeout"


class UpstreamUnavailable(TokenmanError):
    """
    Diretório ou store inacessível.

    Codes: "upstream_unavailable"
    """

    default_code = "upstream_unavailable"


class IdempotencyError(TokenmanError):
    """
    Erro relacionado a idempotência.

    Codes: "in_progress"
    """

    default_code = "idempotency_error"


class IdempotencyCacheHit(TokenmanError):
    """
    Indica que a resposta foi encontrada em cache de idempotência.

    NÃO é um erro - é um fluxo de controle para retornar resposta cacheada.

    Attributes:
        cached_response: A resposta gravada na primeira execução
    """

    def __init__(self, cached_response: dict):
        self.cached_response = cached_response
        super().__init__(code="cache_hit", message="Idempotency cache hit")


class TokenNumberConflict(Exception):
    """
    Sinal interno do store: token_number já existe (violação de unicidade).

    Não chega ao chamador; o TokenIssuer gera outro número e tenta de novo.
    """

    def __init__(self, token_number: str):
        self.token_number = token_number
        super().__init__(f"token_number '{token_number}' already exists")
