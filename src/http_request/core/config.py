"""
Система конфигурации для HTTP Request engine.

Все конфиги immutable (frozen dataclasses) для потокобезопасности.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .logging import LoggingConfig

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_MAX_REDIRECTS = 5

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REDIRECT POLICY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class LegacyRedirectRewrite(str, Enum):
    """
    Что делать с методом на 301/302.

    - GET: любой метод кроме GET/HEAD превращается в GET без тела
      (общепринятое поведение браузеров и клиентов)
    - PRESERVE: метод и тело сохраняются, как на 307/308
    """
    GET = "get"
    PRESERVE = "preserve"


@dataclass(frozen=True)
class RedirectPolicy:
    """
    Политика обработки редиректов.

    Args:
        legacy_method_rewrite: Поведение на 301/302
        allow_downgrade: Разрешить редирект https -> http
        strip_auth_on_cross_origin: Не отправлять Authorization на чужой origin

    Examples:
        >>> RedirectPolicy()
        >>> RedirectPolicy(legacy_method_rewrite=LegacyRedirectRewrite.PRESERVE)
    """
    legacy_method_rewrite: LegacyRedirectRewrite = LegacyRedirectRewrite.GET
    allow_downgrade: bool = False
    strip_auth_on_cross_origin: bool = True

    def __post_init__(self):
        """Нормализация строковых значений."""
        if not isinstance(self.legacy_method_rewrite, LegacyRedirectRewrite):
            object.__setattr__(
                self,
                'legacy_method_rewrite',
                LegacyRedirectRewrite(str(self.legacy_method_rewrite).lower())
            )

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class EngineConfig:
    """
    Главная конфигурация HTTPRequestEngine.

    Значения по умолчанию для таймаутов применяются только к RequestSpec,
    собранным через request_from_params() без явных таймаутов.

    Args:
        max_redirects: Максимум редиректов за один вызов
        redirect_policy: Политика редиректов
        default_connection_timeout_ms: Таймаут подключения по умолчанию (мс)
        default_read_timeout_ms: Таймаут чтения по умолчанию (мс)
        user_agent: User-Agent, если не задан в заголовках запроса
        max_multipart_boundary_attempts: Попыток сгенерировать уникальный boundary
        logging: Конфигурация логирования (None = без собственных handlers)

    Examples:
        >>> config = EngineConfig(max_redirects=10)
        >>> config = EngineConfig.create(max_redirects=3, legacy_method_rewrite="preserve")
    """
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    redirect_policy: RedirectPolicy = field(default_factory=RedirectPolicy)
    default_connection_timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_read_timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: Optional[str] = "http-request-core"
    max_multipart_boundary_attempts: int = 10
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Валидация."""
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative")
        if self.default_connection_timeout_ms < 0:
            raise ValueError("default_connection_timeout_ms must be non-negative")
        if self.default_read_timeout_ms < 0:
            raise ValueError("default_read_timeout_ms must be non-negative")
        if self.max_multipart_boundary_attempts <= 0:
            raise ValueError("max_multipart_boundary_attempts must be positive")

    @classmethod
    def create(
        cls,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        legacy_method_rewrite: str = "get",
        allow_downgrade: bool = False,
        connection_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        read_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        logging: Optional['LoggingConfig'] = None,
        **kwargs
    ) -> 'EngineConfig':
        """
        Удобный конструктор конфигурации.

        Examples:
            >>> config = EngineConfig.create(max_redirects=2)
            >>> config = EngineConfig.create(legacy_method_rewrite="preserve")
        """
        policy = RedirectPolicy(
            legacy_method_rewrite=LegacyRedirectRewrite(legacy_method_rewrite.lower()),
            allow_downgrade=allow_downgrade,
        )
        return cls(
            max_redirects=max_redirects,
            redirect_policy=policy,
            default_connection_timeout_ms=connection_timeout_ms,
            default_read_timeout_ms=read_timeout_ms,
            logging=logging,
            **kwargs
        )

    def with_max_redirects(self, max_redirects: int) -> 'EngineConfig':
        """
        Создать новый конфиг с изменённым лимитом редиректов.

        Example:
            >>> new_config = config.with_max_redirects(10)
        """
        return EngineConfig(
            max_redirects=max_redirects,
            redirect_policy=self.redirect_policy,
            default_connection_timeout_ms=self.default_connection_timeout_ms,
            default_read_timeout_ms=self.default_read_timeout_ms,
            user_agent=self.user_agent,
            max_multipart_boundary_attempts=self.max_multipart_boundary_attempts,
            logging=self.logging,
        )
