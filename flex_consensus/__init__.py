"""flex-consensus: multi-provider question answering with consensus aggregation.

A question is fanned out to several reasoning providers concurrently, their
answers are reduced to one consensus verdict, and the result is delivered
asynchronously under a per-caller daily quota.
"""

__version__ = "0.1.0"
