# adaptcoder/core/workspace.py
"""
组装根：根据配置创建存储、索引器、备份、补丁引擎和上下文管理器，
并按需装配功能请求工作流。所有共享状态都挂在 Workspace 实例上。
"""

from pathlib import Path
from typing import Any, Dict, Optional

from patchflow.core.patch_engine import PatchEngine
from patchflow.storage.backup_store import BackupStore
from patchflow.storage.operation_log import OperationLog
from treecontext.core.indexer import TreeIndexer
from treecontext.core.manager import ContextManager
from treecontext.core.store import SourceStore
from treecontext.providers import RelevantFilesProvider, SymbolIndexProvider, TreeOverviewProvider

from .config import DEFAULT_CONFIG, deep_merge
from .feature_workflow import FeatureWorkflow
from .generator import FeatureGenerator
from .intent import IntentDetector
from .oracle import IOracle
from .restart import RestartTrigger


class Workspace:
    def __init__(self, config: Optional[Dict[str, Any]] = None, root: Optional[str] = None):
        self.config = deep_merge(DEFAULT_CONFIG, config or {})
        if root is not None:
            self.config["project_root"] = str(root)
        self.root = Path(self.config["project_root"]).resolve()

        self.store = SourceStore(self.root)
        self.indexer = TreeIndexer(
            self.store,
            source_roots=self.config["source_roots"],
            source_suffixes=self.config["source_suffixes"],
            exclude_patterns=self.config["exclude_patterns"],
            include_root_files=self.config["include_root_files"],
        )

        backup_dir = self.config.get("backup", {}).get("dir")
        if backup_dir:
            backup_path = Path(backup_dir)
            if not backup_path.is_absolute():
                backup_path = self.root / backup_path
            backup_dir = str(backup_path)
        self.operation_log = OperationLog(backup_dir)
        self.backup_store = BackupStore(self.store, backup_dir, self.operation_log)
        self.engine = PatchEngine(self.store, self.indexer, self.backup_store, self.operation_log)

        self.context_manager = ContextManager()
        self.context_manager.register_provider(TreeOverviewProvider(self.store))
        self.context_manager.register_provider(SymbolIndexProvider(self.store))
        self.context_manager.register_provider(RelevantFilesProvider(self.store))

    def scan(self) -> int:
        return self.indexer.scan()

    def build_generator(self, oracle: IOracle) -> FeatureGenerator:
        return FeatureGenerator(oracle, self.engine, self.context_manager, self.config)

    def build_workflow(self, oracle: IOracle, restart_trigger: Optional[RestartTrigger] = None) -> FeatureWorkflow:
        return FeatureWorkflow(
            oracle=oracle,
            detector=IntentDetector(oracle, self.config),
            generator=self.build_generator(oracle),
            restart_trigger=restart_trigger,
            config=self.config,
        )
