"""
Practitioner roster backed by the YAML configuration.
"""

from typing import List, Optional

from ..config import AppConfig
from ..domain.models import Practitioner


class ConfigPractitionerSource:
    """
    Serves practitioners declared under ``practitioners:`` in config.yaml.

    The roster is owned elsewhere; this adapter only reads it.
    """

    def __init__(self, config: AppConfig):
        self._config = config

    async def get_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        entry = self._config.find_practitioner(practitioner_id)
        return entry.to_practitioner() if entry else None

    async def list_practitioners(self) -> List[Practitioner]:
        return [entry.to_practitioner() for entry in self._config.practitioners]
