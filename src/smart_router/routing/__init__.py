"""Smart Router routing module - the decision engine.

This module provides:
- Task analysis (complexity score, task type, content flags)
- Pricing lookup and cost estimation
- Weighted model selection over the configured candidates
- The per-wallet quota gate
- Pattern learning from decision outcomes
- The SmartRouter facade tying them together
"""

from smart_router.routing.analyzer import TaskAnalysis, TaskAnalyzer, TaskType, analyze_task
from smart_router.routing.engine import RoutedRequest, SmartRouter
from smart_router.routing.learning import PatternLearner
from smart_router.routing.pricing import PricingTable
from smart_router.routing.quota import QuotaAvailability, QuotaGate, QuotaStatus
from smart_router.routing.selector import CandidateScore, ModelSelector, Selection

__all__ = [
    # Analyzer
    "TaskType",
    "TaskAnalysis",
    "TaskAnalyzer",
    "analyze_task",
    # Pricing
    "PricingTable",
    # Selector
    "ModelSelector",
    "Selection",
    "CandidateScore",
    # Quota
    "QuotaGate",
    "QuotaStatus",
    "QuotaAvailability",
    # Learning
    "PatternLearner",
    # Facade
    "SmartRouter",
    "RoutedRequest",
]
