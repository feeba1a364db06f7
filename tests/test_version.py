"""Tests for client build information."""

import dataclasses

import pytest

from synse_client import __version__
from synse_client.version import BuildInfo, get_build_info


class TestBuildInfo:
    def test_fields_populated(self):
        info = get_build_info()

        assert info.version
        assert info.python_version
        assert info.os

    def test_version_matches_package(self):
        # Installed metadata and the package attribute are released together
        assert get_build_info().version == __version__

    def test_same_instance_every_call(self):
        assert get_build_info() is get_build_info()

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            get_build_info().version = "0.0.0"

    def test_to_dict(self):
        info = BuildInfo(
            version="3.0.0",
            git_commit="abc123",
            git_tag="v3.0.0",
            build_date="2019-01-01",
            python_version="3.12.0",
            os="linux",
            arch="x86_64",
        )

        assert info.to_dict() == {
            "version": "3.0.0",
            "git_commit": "abc123",
            "git_tag": "v3.0.0",
            "build_date": "2019-01-01",
            "python_version": "3.12.0",
            "os": "linux",
            "arch": "x86_64",
        }
