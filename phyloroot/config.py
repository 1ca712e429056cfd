"""Configuration for phyloroot analyses."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


class Config:
    """Process-wide settings read from the environment."""

    # Logging
    LOG_LEVEL = os.environ.get("PHYLOROOT_LOG_LEVEL", "INFO")
    LOG_DIR = Path(os.environ.get("PHYLOROOT_LOG_DIR", "logs"))
    LOG_FILE = LOG_DIR / "phyloroot.log"

    # Analysis defaults
    SEED = int(os.environ.get("PHYLOROOT_SEED", "1"))
    WORKERS = int(os.environ.get("PHYLOROOT_WORKERS", "1"))


@dataclass
class AnalysisConfig:
    """Configuration for the rooting analysis pipeline."""

    outgroup: List[str] = field(default_factory=list)
    seed: int = Config.SEED
    n_starts: int = 10
    bootstrap_replicates: int = 100
    max_workers: int = Config.WORKERS
    plot_format: Optional[str] = "png"
    logger_name: str = "phyloroot.pipeline"

    def __post_init__(self) -> None:
        if isinstance(self.outgroup, str):
            self.outgroup = [self.outgroup]
        if not self.outgroup:
            raise ValueError("At least one outgroup taxon is required")
        if self.n_starts < 1:
            raise ValueError("n_starts must be at least 1")
        if self.bootstrap_replicates < 0:
            raise ValueError("bootstrap_replicates cannot be negative")
