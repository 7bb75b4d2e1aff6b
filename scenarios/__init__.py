"""
Scenario Execution Module
"""
from .executor import ScenarioExecutor, ScenarioConfig, ExecutionResult, ExecutionPhase, ScriptedCommand

__all__ = ['ScenarioExecutor', 'ScenarioConfig', 'ExecutionResult', 'ExecutionPhase', 'ScriptedCommand']
