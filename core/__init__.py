"""Ядро спільних (SSOT) утиліт проєкту.

Цей пакет містить лише загальні, доменно-нейтральні будівельні блоки:
- серіалізацію/десеріалізацію JSON та час у мілісекундах;
- контракти (схеми payload) між шарами: producer → store → diagnosis.

Аналітика (K-лінії, кореляція, топологія) живе у пакетах ``viztel_*``.
"""

from __future__ import annotations

from . import serialization as serialization

__all__ = [
    "serialization",
]
