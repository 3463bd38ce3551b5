# src/atlas_provision/core/validation/__init__.py
"""
Validação de invariantes transversais da configuração resolvida.

API pública:
    - Assertion, ConfigWarning → declarações (predicado + mensagem)
    - validate                 → avalia todas as asserções, agrega falhas
    - collect_warnings         → mensagens não fatais
    - ValidationError          → erro agregado com `failures`
"""

from .assertions import (
    Assertion,
    AssertionFailure,
    ValidationError,
    ConfigWarning,
    collect_warnings,
    validate,
)

__all__ = [
    "Assertion",
    "AssertionFailure",
    "ValidationError",
    "ConfigWarning",
    "collect_warnings",
    "validate",
]
