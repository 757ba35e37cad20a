"""Project-wide constants (file name patterns, i18n defaults, asset kinds)."""

import re

GIT_CONFIG_FILE_REGEX = re.compile(r"(?:^|/)\.git(?:attributes|ignore|keep)$")

# Hugo branch bundle index files, optionally with a locale suffix (_index.md, _index.fr-CA.md)
INDEX_FILE_REGEX = re.compile(r"(?:^|/)_index(?:\.[a-zA-Z0-9_-]+)?\.md$")

DEFAULT_LOCALE_KEY = "_default"

DEFAULT_FILE_EXTENSION = "md"

MARKDOWN_EXTENSIONS = ("md", "mkd", "mkdn", "mdwn", "mdown", "markdown")

DEFAULT_INDEX_FILE_NAME = "_index"

DOC_EXTENSION_REGEX = re.compile(r"\.(?:csv|docx?|odp|ods|odt|pdf|pptx?|rtf|xslx?)$", re.IGNORECASE)

ASSET_READ_CHUNK_SIZE = 1024 * 1024
