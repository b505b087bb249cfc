"""Agents package initialization"""

from .mcq_parser_agent import MCQParserAgent
from .web_dev_parser_agent import WebDevParserAgent
from .python_parser_agent import PythonParserAgent
from .text_parser_agent import TextParserAgent
from .router_agent import RouterAgent, classify
from .planner_agent import PlannerAgent
from .orchestrator import SolverOrchestrator, build_default_orchestrator

__all__ = [
    'MCQParserAgent',
    'WebDevParserAgent',
    'PythonParserAgent',
    'TextParserAgent',
    'RouterAgent',
    'classify',
    'PlannerAgent',
    'SolverOrchestrator',
    'build_default_orchestrator'
]
