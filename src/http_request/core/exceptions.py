"""
Иерархия исключений HTTP Request.

Классификация:
- InvalidParameterError / EncodingError - ошибки входных данных, до отправки
- CertificateParseError - ошибки PEM материала, до подключения
- TransportError - сетевые ошибки (таймауты, прокси, DNS, TLS)
- TooManyRedirectsError - превышен лимит редиректов

Автоматических ретраев нет: безопасность повтора зависит от идемпотентности
метода, которую знает только вызывающий код.
"""

from typing import Optional

import httpx

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HTTPRequestException(Exception):
    """Базовое исключение HTTP Request."""

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ ПАРАМЕТРОВ (до отправки)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class InvalidParameterError(HTTPRequestException):
    """
    Невалидный или отсутствующий параметр запроса.

    Args:
        message: Сообщение об ошибке
        field: Имя параметра (url, method, proxy.port, ...)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

class EncodingError(InvalidParameterError):
    """
    Тело запроса не может быть закодировано.

    Примеры:
    - multipart part без name или value
    - неподдерживаемый тип body
    - не удалось сгенерировать уникальный boundary
    - stream body нельзя переотправить при 307/308 редиректе
    """
    pass

class CertificateParseError(HTTPRequestException):
    """
    Ошибка разбора PEM материала.

    Примеры:
    - битый PEM / base64
    - неподдерживаемый тип ключа
    - ключ не соответствует сертификату

    Args:
        message: Сообщение
        source: Откуда материал ('certificates' или 'client_certificate')
    """

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        msg = message
        if source:
            msg += f" ({source})"
        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СЕТЕВЫЕ ОШИБКИ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(HTTPRequestException):
    """Сетевая ошибка. Исходная причина доступна через __cause__."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = f"{message}"
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """
    Таймаут запроса.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        timeout: Значение таймаута (мс)
        timeout_type: Фаза ('connect' или 'read')
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[int] = None,
        timeout_type: Optional[str] = None
    ):
        self.timeout = timeout
        self.timeout_type = timeout_type

        msg = message
        if timeout_type:
            msg += f" ({timeout_type} timeout"
            if timeout:
                msg += f": {timeout}ms"
            msg += ")"

        super().__init__(msg, url)

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - Protocol error
    """
    pass

class ProxyError(TransportError):
    """
    Ошибка прокси (отказ CONNECT, 407, недоступный прокси).

    Args:
        message: Сообщение
        url: URL
        proxy: Адрес прокси
    """

    def __init__(self, message: str, url: Optional[str] = None, proxy: Optional[str] = None):
        self.proxy = proxy
        msg = message
        if proxy:
            msg += f" (proxy: {proxy})"
        super().__init__(msg, url)

class DNSError(TransportError):
    """DNS resolution failed."""
    pass

class TLSError(TransportError):
    """TLS handshake or certificate verification failed."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TooManyRedirectsError(HTTPRequestException):
    """
    Превышен лимит редиректов.

    Args:
        max_redirects: Лимит
        url: Последний URL в цепочке
    """

    def __init__(self, max_redirects: int, url: Optional[str] = None):
        self.max_redirects = max_redirects
        self.url = url

        msg = f"Max redirects ({max_redirects}) exceeded"
        if url:
            msg += f" for {url}"

        super().__init__(msg)

class ConfigurationError(HTTPRequestException):
    """Ошибка конфигурации."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)

_TLS_MARKERS = (
    "ssl",
    "certificate",
    "tls",
)

def classify_httpx_exception(
    exc: Exception,
    url: str,
    connect_timeout_ms: Optional[int] = None,
    read_timeout_ms: Optional[int] = None,
    proxy: Optional[str] = None,
) -> HTTPRequestException:
    """
    Конвертировать httpx исключения в наши.

    Args:
        exc: Исключение из httpx
        url: URL запроса
        connect_timeout_ms: Таймаут подключения (для сообщения)
        read_timeout_ms: Таймаут чтения (для сообщения)
        proxy: Адрес прокси (для сообщения)

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> exc = httpx.ReadTimeout("timed out")
        >>> our_exc = classify_httpx_exception(exc, "https://example.com")
        >>> assert isinstance(our_exc, TimeoutError)
        >>> assert our_exc.timeout_type == "read"
    """

    if isinstance(exc, (httpx.ConnectTimeout, httpx.PoolTimeout)):
        return TimeoutError("Connection timed out", url, connect_timeout_ms, "connect")

    elif isinstance(exc, (httpx.ReadTimeout, httpx.WriteTimeout)):
        return TimeoutError("Read timed out", url, read_timeout_ms, "read")

    elif isinstance(exc, httpx.TimeoutException):
        return TimeoutError(str(exc) or "Request timed out", url)

    elif isinstance(exc, httpx.ProxyError):
        return ProxyError(str(exc) or "Proxy error", url, proxy)

    elif isinstance(exc, httpx.ConnectError):
        text = str(exc).lower()
        if any(marker in text for marker in _DNS_MARKERS):
            return DNSError(str(exc), url)
        if any(marker in text for marker in _TLS_MARKERS):
            return TLSError(str(exc), url)
        return ConnectionError(str(exc) or "Connection error", url)

    elif isinstance(exc, httpx.TransportError):
        # ReadError, WriteError, RemoteProtocolError, ...
        return ConnectionError(str(exc) or exc.__class__.__name__, url)

    else:
        # Неизвестная ошибка - оборачиваем
        return TransportError(str(exc) or exc.__class__.__name__, url)
