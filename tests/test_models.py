"""
Tests for the API models: parsing, request payloads and manifest merging.
"""

import copy

import pytest

from starview.constants import STORAGE_DIRECTORY_PATH
from starview.exceptions import DecodeError
from starview.net.models import (
    ApiResponse,
    AssetPathArchive,
    AssetPathDiff,
    AssetPaths,
    AssetPathsFull,
    AssetPathsInfo,
    AssetVersionInfo,
    LoadRequest,
    SignupRequest,
    SignupResponse,
    union_archives,
)

pytestmark = [pytest.mark.unit]


def _archive(sha256, location=None, size=10):
    return AssetPathArchive(
        location=location or f"https://cdn.example.com/patch/gf/upload_assets/{sha256}",
        size=size,
        sha256=sha256,
    )


def _manifest(full_hashes, diffs=(), version="2.0"):
    info = AssetPathsInfo(
        client_asset_version="1.0",
        target_asset_version=version,
        eventual_target_asset_version=version,
        is_initial=False,
    )
    return AssetPaths(
        info=info,
        full=AssetPathsFull(version=version, archive=[_archive(h) for h in full_hashes]),
        diff=[
            AssetPathDiff(version=v, original_version=o, archive=[_archive(h) for h in hashes])
            for v, o, hashes in diffs
        ],
        asset_version_hash=f"hash-{version}",
    )


def _full_hashes(manifest):
    return [archive.sha256 for archive in manifest.full.archive]


def _diff_map(manifest):
    return {
        diff.key: sorted(archive.sha256 for archive in diff.archive)
        for diff in manifest.diff
    }


class TestParsing:
    """Test from_dict parsing of server payloads."""

    def test_asset_paths_from_dict(self, asset_paths_data):
        manifest = AssetPaths.from_dict(asset_paths_data)

        assert manifest.info.target_asset_version == "2.0"
        assert manifest.info.is_initial is False
        assert manifest.full.archive[0].sha256 == "H1"
        assert manifest.full.archive[0].size == 100
        assert manifest.diff == []
        assert manifest.asset_version_hash == "hash-2.0"

    def test_asset_paths_round_trips_through_to_dict(self, asset_paths_data):
        manifest = AssetPaths.from_dict(asset_paths_data)
        assert AssetPaths.from_dict(manifest.to_dict()) == manifest

    def test_missing_diff_is_empty(self, asset_paths_data):
        del asset_paths_data["diff"]
        assert AssetPaths.from_dict(asset_paths_data).diff == []

    def test_missing_required_field(self, asset_paths_data):
        del asset_paths_data["info"]["target_asset_version"]
        with pytest.raises(DecodeError, match="Missing field"):
            AssetPaths.from_dict(asset_paths_data)

    def test_wrong_field_type(self, asset_paths_data):
        asset_paths_data["full"]["archive"][0]["size"] = "100"
        with pytest.raises(DecodeError, match="wrong type"):
            AssetPaths.from_dict(asset_paths_data)

    def test_bool_is_not_an_int(self, asset_paths_data):
        asset_paths_data["full"]["archive"][0]["size"] = True
        with pytest.raises(DecodeError):
            AssetPaths.from_dict(asset_paths_data)

    def test_version_info_from_dict(self, version_info_data):
        info = AssetVersionInfo.from_dict(version_info_data)
        assert info.files_list.endswith("files.csv")
        assert info.to_dict() == version_info_data

    def test_api_response_envelope(self):
        response = ApiResponse.from_dict(
            {
                "data_headers": {
                    "short_udid": 1,
                    "viewer_id": 2,
                    "servertime": 3,
                    "result_code": 1,
                },
                "data": {"login_token": "token", "new_account": 1},
            },
            SignupResponse.from_dict,
        )
        assert response.data_headers.viewer_id == 2
        assert response.data_headers.udid is None
        assert response.data.login_token == "token"

    def test_api_response_without_data_headers(self):
        with pytest.raises(DecodeError):
            ApiResponse.from_dict({"data": {}}, SignupResponse.from_dict)


class TestRequestPayloads:
    """Test to_payload of request models."""

    def test_signup_payload_uses_camel_case(self):
        payload = SignupRequest().to_payload()
        assert payload["storageDirectoryPath"] == STORAGE_DIRECTORY_PATH
        assert payload["media"] == "none"
        assert isinstance(payload["deviceId"], float)
        assert "storage_directory_path" not in payload

    def test_load_payload_keychain_is_viewer_id(self):
        payload = LoadRequest.from_viewer_id(1234).to_payload()
        assert payload["viewer_id"] == 1234
        assert payload["keychain"] == 1234
        assert payload["imei"] == "none"


class TestUnionArchives:
    def test_first_occurrence_wins(self):
        first = _archive("A", location="https://a/first")
        second = _archive("A", location="https://a/second")
        merged = union_archives([first], [second, _archive("B")])

        assert [a.sha256 for a in merged] == ["A", "B"]
        assert merged[0].location == "https://a/first"


class TestMerge:
    """Test AssetPaths.merge."""

    def test_full_archives_unioned_by_hash(self):
        android = _manifest(["A", "B"])
        ios = _manifest(["B", "C"])

        merged = android.merge(ios)

        assert _full_hashes(merged) == ["A", "B", "C"]

    def test_keeps_first_manifest_metadata(self):
        android = _manifest(["A"], version="2.0")
        ios = _manifest(["B"], version="2.1")

        merged = android.merge(ios)

        assert merged.info == android.info
        assert merged.full.version == "2.0"
        assert merged.asset_version_hash == "hash-2.0"

    def test_diffs_unioned_by_version_pair(self):
        android = _manifest([], diffs=[("2.0", "1.0", ["D1", "D2"])])
        ios = _manifest(
            [], diffs=[("2.0", "1.0", ["D2", "D3"]), ("2.0", "1.5", ["D4"])]
        )

        merged = android.merge(ios)

        assert _diff_map(merged) == {
            ("2.0", "1.0"): ["D1", "D2", "D3"],
            ("2.0", "1.5"): ["D4"],
        }

    def test_merge_is_idempotent(self):
        manifest = _manifest(["A", "B"], diffs=[("2.0", "1.0", ["D1"])])

        merged = manifest.merge(manifest)

        assert _full_hashes(merged) == ["A", "B"]
        assert _diff_map(merged) == _diff_map(manifest)

    def test_merge_is_commutative_as_sets(self):
        android = _manifest(["A", "B"], diffs=[("2.0", "1.0", ["D1"])])
        ios = _manifest(["C", "A"], diffs=[("2.0", "1.0", ["D2"]), ("2.0", "1.1", ["D3"])])

        left = android.merge(ios)
        right = ios.merge(android)

        assert set(_full_hashes(left)) == set(_full_hashes(right))
        assert _diff_map(left) == _diff_map(right)

    def test_merge_does_not_modify_inputs(self):
        android = _manifest(["A"], diffs=[("2.0", "1.0", ["D1"])])
        ios = _manifest(["B"], diffs=[("2.0", "1.0", ["D2"])])
        android_before = copy.deepcopy(android)
        ios_before = copy.deepcopy(ios)

        android.merge(ios)

        assert android == android_before
        assert ios == ios_before

    def test_no_duplicate_hashes_within_a_list(self):
        android = _manifest(["A", "A"], diffs=[("2.0", "1.0", ["D1", "D1"])])
        merged = android.merge(_manifest([]))

        assert _full_hashes(merged) == ["A"]
        assert _diff_map(merged)[("2.0", "1.0")] == ["D1"]

    def test_iter_archives_covers_full_and_diffs(self):
        manifest = _manifest(["A"], diffs=[("2.0", "1.0", ["D1"]), ("2.0", "1.5", ["D2"])])
        assert [a.sha256 for a in manifest.iter_archives()] == ["A", "D1", "D2"]
