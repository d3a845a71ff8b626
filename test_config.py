#!/usr/bin/env python3
"""
Tests for environment-driven settings
"""

import importlib

import pytest

import config


@pytest.fixture
def reload_config(monkeypatch):
    def load(**env):
        for name in ("VIDEO_S3_BUCKET", "AWS_S3_BUCKET"):
            monkeypatch.delenv(name, raising=False)
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return importlib.reload(config)

    yield load
    monkeypatch.undo()
    importlib.reload(config)


def test_video_bucket_reads_its_own_key(reload_config):
    settings = reload_config(VIDEO_S3_BUCKET="lecture-videos", AWS_S3_BUCKET="legacy-bucket")
    assert settings.VIDEO_S3_BUCKET == "lecture-videos"


def test_video_bucket_accepts_legacy_key(reload_config):
    assert reload_config(AWS_S3_BUCKET="legacy-bucket").VIDEO_S3_BUCKET == "legacy-bucket"


def test_video_bucket_default(reload_config):
    assert reload_config().VIDEO_S3_BUCKET == "study-hub-videos-generation"
