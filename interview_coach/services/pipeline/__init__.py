"""
Post-interview pipeline package.

Architecture:
- results_pipeline.py: evaluation -> roadmap orchestration
- resume_scorer.py: resume vs. job description scoring
- llm_parser.py: JSON cleaning, schema validation
"""

from .results_pipeline import ResultsPipeline
from .resume_scorer import score_resume
from .llm_parser import parse_llm_response

__all__ = [
    'ResultsPipeline',
    'score_resume',
    'parse_llm_response',
]
