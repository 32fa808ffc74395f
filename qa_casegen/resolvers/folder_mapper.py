# ==============================================
# Analytics domain <-> destination folder mapping
# ==============================================

import json
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from qa_casegen.models.classification_models import AnalyticsDomain
from qa_casegen.models.folder_models import FolderMapping, FoldersConfigFile
from qa_casegen.utils.exceptions import ConfigurationError, UnmappedDomainError
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


class FolderMapper:
    """
    Lookup table from analytics domain to BrowserStack folder

    The table is loaded once and never mutated. Duplicate domains or folder
    ids are configuration defects detected at load time: strict mode raises,
    non-strict mode logs a warning and keeps the first entry in table order.
    """

    def __init__(self, mappings: Iterable[FolderMapping], strict: bool = True):
        """
        Initialize mapper from folder mappings

        Args:
            mappings: Folder mappings in table order
            strict: Raise on duplicate domains/folder ids instead of warning

        Raises:
            ConfigurationError: On duplicates in strict mode
        """
        self._by_domain: Dict[AnalyticsDomain, FolderMapping] = {}
        self._by_folder_id: Dict[int, AnalyticsDomain] = {}
        problems: List[str] = []

        for mapping in mappings:
            if mapping.domain in self._by_domain:
                problems.append(f"domain '{mapping.domain}' is mapped more than once")
                continue
            self._by_domain[mapping.domain] = mapping
            if mapping.folder_id in self._by_folder_id:
                problems.append(
                    f"folder id {mapping.folder_id} is shared by "
                    f"'{self._by_folder_id[mapping.folder_id]}' and '{mapping.domain}'"
                )
                continue
            self._by_folder_id[mapping.folder_id] = mapping.domain

        if problems:
            message = "Ambiguous folder mapping: " + "; ".join(problems)
            if strict:
                raise ConfigurationError(message, context={'problems': problems})
            logger.warning(f"{message} (first entry wins)")

        logger.info(f"Loaded {len(self._by_domain)} folder mappings")

    @classmethod
    def from_file(cls, config_path: Union[str, Path], strict: bool = True) -> 'FolderMapper':
        """
        Load mapper from a JSON folders config file

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid
        """
        config_path = Path(config_path)
        try:
            raw = json.loads(config_path.read_text(encoding='utf-8'))
            folders_config = FoldersConfigFile.model_validate(raw)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Folders config not found: {config_path}", original_exception=e
            ) from e
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(
                f"Invalid folders config {config_path}: {e}", original_exception=e
            ) from e
        return cls(folders_config.mappings, strict=strict)

    def _mapping(self, domain: AnalyticsDomain) -> FolderMapping:
        mapping = self._by_domain.get(domain)
        if mapping is None:
            raise UnmappedDomainError(
                f"No folder configured for type: {domain}",
                context={'domain': domain}
            )
        return mapping

    def get_folder_id(self, domain: AnalyticsDomain) -> int:
        """
        Get BrowserStack folder ID for an analytics domain

        Raises:
            UnmappedDomainError: If the domain has no mapping
        """
        return self._mapping(domain).folder_id

    def get_folder_name(self, domain: AnalyticsDomain) -> str:
        """
        Get folder display name for an analytics domain

        Raises:
            UnmappedDomainError: If the domain has no mapping
        """
        return self._mapping(domain).folder_name

    def get_all_mappings(self) -> Dict[AnalyticsDomain, int]:
        """Fresh dict of domain -> folder id; safe for the caller to mutate"""
        return {domain: mapping.folder_id for domain, mapping in self._by_domain.items()}

    def get_mapping_records(self) -> List[FolderMapping]:
        """All mappings in table order (records are frozen)"""
        return list(self._by_domain.values())

    def has_folder_id(self, folder_id: int) -> bool:
        return folder_id in self._by_folder_id

    def get_type_by_folder_id(self, folder_id: int) -> Optional[AnalyticsDomain]:
        """Reverse lookup; None when the folder id is not configured"""
        return self._by_folder_id.get(folder_id)

    def ensure_covers(self, domains: Iterable[AnalyticsDomain], fallback: AnalyticsDomain) -> None:
        """
        Check every classification domain except the fallback has a folder

        Raises:
            ConfigurationError: Listing all unmapped domains
        """
        unmapped = [d for d in domains if d != fallback and d not in self._by_domain]
        if unmapped:
            raise ConfigurationError(
                f"Domains without folder mapping: {', '.join(unmapped)}",
                context={'domains': unmapped}
            )

    def verify_remote_folders(self, folder_exists: Callable[[int], bool]) -> List[int]:
        """
        Check every mapped folder against the test-management service

        Args:
            folder_exists: Callable answering whether a folder id exists remotely

        Returns:
            Folder ids that are configured but missing remotely
        """
        missing = [folder_id for folder_id in self._by_folder_id if not folder_exists(folder_id)]
        if missing:
            logger.warning(f"Configured folders missing in BrowserStack: {missing}")
        return missing
