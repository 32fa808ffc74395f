from __future__ import annotations

import pytest

from conftest import DOMAINS, PROJECT_ROOT, make_mappings
from qa_casegen.models.folder_models import FolderMapping
from qa_casegen.resolvers.folder_mapper import FolderMapper
from qa_casegen.resolvers.rule_resolver import RuleResolver
from qa_casegen.utils.exceptions import ConfigurationError, UnmappedDomainError


def test_lookup_by_domain(folder_mapper: FolderMapper) -> None:
    assert folder_mapper.get_folder_id("homepage") == 102
    assert folder_mapper.get_folder_name("homepage") == "Homepage"


def test_unmapped_domain_raises_instead_of_sentinel(folder_mapper: FolderMapper) -> None:
    with pytest.raises(UnmappedDomainError):
        folder_mapper.get_folder_id("other")
    with pytest.raises(ConfigurationError):
        folder_mapper.get_folder_name("other")


def test_round_trip_for_every_mapped_folder(folder_mapper: FolderMapper) -> None:
    for folder_id in folder_mapper.get_all_mappings().values():
        domain = folder_mapper.get_type_by_folder_id(folder_id)
        assert folder_mapper.get_folder_id(domain) == folder_id


def test_reverse_lookup_of_unknown_id_is_none(folder_mapper: FolderMapper) -> None:
    assert folder_mapper.get_type_by_folder_id(999) is None
    assert not folder_mapper.has_folder_id(999)
    assert folder_mapper.has_folder_id(101)


def test_get_all_mappings_returns_independent_copies(folder_mapper: FolderMapper) -> None:
    first = folder_mapper.get_all_mappings()
    second = folder_mapper.get_all_mappings()

    first["homepage"] = -1
    first["injected"] = 1
    del first["usage-analytics"]

    assert second["homepage"] == 102
    assert "injected" not in second
    assert folder_mapper.get_all_mappings() == second
    assert folder_mapper.get_folder_id("homepage") == 102


def test_duplicate_folder_id_is_rejected_in_strict_mode() -> None:
    mappings = make_mappings() + [FolderMapping(domain="other", folder_id=101, folder_name="Other")]
    with pytest.raises(ConfigurationError) as exc_info:
        FolderMapper(mappings)
    assert "101" in exc_info.value.message


def test_duplicate_folder_id_first_entry_wins_when_not_strict() -> None:
    mappings = make_mappings() + [FolderMapping(domain="other", folder_id=101, folder_name="Other")]
    mapper = FolderMapper(mappings, strict=False)

    assert mapper.get_type_by_folder_id(101) == "event-conversion"
    assert mapper.get_folder_id("other") == 101


def test_duplicate_domain_is_rejected_in_strict_mode() -> None:
    mappings = make_mappings() + [FolderMapping(domain="homepage", folder_id=500, folder_name="Again")]
    with pytest.raises(ConfigurationError):
        FolderMapper(mappings)


def test_ensure_covers_lists_every_unmapped_domain(folder_mapper: FolderMapper) -> None:
    folder_mapper.ensure_covers(DOMAINS + ["other"], fallback="other")

    with pytest.raises(ConfigurationError) as exc_info:
        folder_mapper.ensure_covers(DOMAINS + ["new-a", "new-b", "other"], fallback="other")
    assert exc_info.value.context["domains"] == ["new-a", "new-b"]


def test_verify_remote_folders_returns_missing_ids(folder_mapper: FolderMapper) -> None:
    remote = {101, 103}
    assert folder_mapper.verify_remote_folders(lambda folder_id: folder_id in remote) == [102, 104]


def test_from_file_parses_camel_case(tmp_path) -> None:
    path = tmp_path / "folders.config.json"
    path.write_text(
        '{"mappings": [{"domain": "homepage", "folderId": 7, "folderName": "Home"}]}',
        encoding="utf-8",
    )
    mapper = FolderMapper.from_file(path)
    assert mapper.get_folder_id("homepage") == 7


def test_from_file_rejects_non_positive_ids(tmp_path) -> None:
    path = tmp_path / "folders.config.json"
    path.write_text(
        '{"mappings": [{"domain": "homepage", "folderId": 0, "folderName": "Home"}]}',
        encoding="utf-8",
    )
    with pytest.raises(ConfigurationError):
        FolderMapper.from_file(path)


def test_shipped_folders_cover_shipped_rules() -> None:
    resolver = RuleResolver.from_file(PROJECT_ROOT / "config" / "rules.config.json", base_dir=PROJECT_ROOT)
    mapper = FolderMapper.from_file(PROJECT_ROOT / "config" / "folders.config.json")

    mapper.ensure_covers(resolver.get_domains(), resolver.get_default_domain())
