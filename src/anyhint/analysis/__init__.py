"""
Static analysis passes: scopes, binding targets and function signatures.
"""

from anyhint.analysis.functions import FunctionSite, ParameterSite, find_functions
from anyhint.analysis.scopes import Binding, ClassInfo, Scope, ScopeAnalysis, ScopeAnalyzer
from anyhint.analysis.targets import BindingTarget, can_be_annotated, find_suitable_targets, is_annotated

__all__ = [
  "Binding",
  "BindingTarget",
  "ClassInfo",
  "FunctionSite",
  "ParameterSite",
  "Scope",
  "ScopeAnalysis",
  "ScopeAnalyzer",
  "can_be_annotated",
  "find_functions",
  "find_suitable_targets",
  "is_annotated",
]
