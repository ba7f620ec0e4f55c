from .tree_overview import TreeOverviewProvider, SymbolIndexProvider
from .relevant_files import RelevantFilesProvider

__all__ = ['TreeOverviewProvider', 'SymbolIndexProvider', 'RelevantFilesProvider']
