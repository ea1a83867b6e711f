"""
Shared types for the dataset registry.

A DatasetDescriptor is the author's static declaration of one dataset: where
it comes from, where it lands on disk, and how to cite it. A ValidationEntry
is what the Validator needs to check a file that may or may not have come
from the Fetcher.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DatasetDescriptor:
    """Static declaration of one dataset's source and destination."""

    name: str  # e.g. "Forestry"
    directory: str  # e.g. "forestry", relative to the data root
    filename: str  # e.g. "forest_inventory.csv"
    source_url: str
    citation_source: str = ""
    citation_text: str = ""
    description: str = ""
    # Known-good MD5 of the remote file; None skips verification.
    expected_md5: Optional[str] = None
    primary_key: Optional[str] = None
    ruleset: Optional[str] = None  # key into natsci_data.schemas.RULESETS

    def dataset_dir(self, data_dir):
        return os.path.join(data_dir, self.directory)

    def target_path(self, data_dir):
        return os.path.join(data_dir, self.directory, self.filename)

    @property
    def target_key(self):
        """Normalised ``directory/filename`` used for the uniqueness check."""
        return os.path.normpath(os.path.join(self.directory, self.filename))


@dataclass(frozen=True)
class ValidationEntry:
    """A dataset file to validate."""

    name: str
    path: str
    primary_key: Optional[str] = None
    ruleset: Optional[str] = None

    @classmethod
    def from_descriptor(cls, descriptor, data_dir):
        return cls(
            name=descriptor.name,
            path=descriptor.target_path(data_dir),
            primary_key=descriptor.primary_key,
            ruleset=descriptor.ruleset,
        )
