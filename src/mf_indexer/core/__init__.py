"""
Core Layer - Ignore rules, classification, configuration and file scanning components.
"""

from mf_indexer.core.classifier import (
    BINARY_EXTENSIONS,
    TEXT_EXTENSIONS,
    Classification,
    classify,
    classify_bytes,
    is_binary_file,
)
from mf_indexer.core.config import (
    IndexerConfig,
    LoggingConfig,
    ScanConfig,
    load_config,
)
from mf_indexer.core.errors import (
    IgnoreRuleError,
    IncludePatternError,
    ScanError,
    ScanRootError,
)
from mf_indexer.core.file_scanner import (
    DiagnosticKind,
    FileRecord,
    FileScanner,
    FileScannerInterface,
    ResultAggregator,
    ScanDiagnostic,
    ScanSummary,
    scan_repo,
    scan_repo_collect,
)
from mf_indexer.core.ignore_rules import (
    BUILTIN_IGNORE_PATTERNS,
    IgnoreRule,
    IgnoreRuleBuilder,
    IgnoreRuleSet,
    RuleSource,
    build_ignore_rule_set,
)
from mf_indexer.core.include_filter import IncludeFilter

__all__ = [
    # Config
    "IndexerConfig",
    "ScanConfig",
    "LoggingConfig",
    "load_config",
    # Errors
    "ScanError",
    "ScanRootError",
    "IgnoreRuleError",
    "IncludePatternError",
    # Ignore rules
    "IgnoreRule",
    "IgnoreRuleSet",
    "IgnoreRuleBuilder",
    "RuleSource",
    "BUILTIN_IGNORE_PATTERNS",
    "build_ignore_rule_set",
    "IncludeFilter",
    # Classifier
    "Classification",
    "TEXT_EXTENSIONS",
    "BINARY_EXTENSIONS",
    "classify",
    "classify_bytes",
    "is_binary_file",
    # FileScanner
    "FileRecord",
    "ScanDiagnostic",
    "DiagnosticKind",
    "ScanSummary",
    "FileScannerInterface",
    "FileScanner",
    "ResultAggregator",
    "scan_repo",
    "scan_repo_collect",
]
