"""Fact-checking of high-risk mentions.

Components:
- SearchExecutor: Serper-backed evidence search
- determine_truth_status: keyword heuristic over evidence snippets
- FactCheckingStage: evidence + verdict + response draft per mention
"""

from repushield.agents.sifters.verification.fact_checking_agent import FactCheckingStage
from repushield.agents.sifters.verification.search_executor import SearchExecutor
from repushield.agents.sifters.verification.truth_heuristic import determine_truth_status

__all__ = [
    "FactCheckingStage",
    "SearchExecutor",
    "determine_truth_status",
]
