# daybot/core/errors.py


class BotError(Exception):
    pass


class ParseError(BotError):
    """El texto de hora no se pudo convertir a un instante."""


class StoreUnavailable(BotError):
    """Falla de persistencia (Supabase caído, timeout, respuesta inválida)."""


class DeliveryFailed(BotError):
    pass


class NotFound(BotError):
    """Referencia a un usuario o índice sin registro."""
