"""Configuration settings for the content management core."""

import os
from pathlib import Path


CACHE_DIR = os.environ.get("CMS_CACHE_DIR", str(Path.home() / ".cache" / "repocms"))

CACHE_STORE_NAME = os.environ.get("CMS_CACHE_STORE", "file_cache")

META_STORE_NAME = "meta"

DEV_MODE_ENABLED = os.environ.get("CMS_DEV_MODE", "").lower() in ("1", "true", "yes")

# Commit messages starting with this prefix do not trigger a site deployment
SKIP_CI_PREFIX = "[skip ci]"
