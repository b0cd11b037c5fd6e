"""Machine learning module for the CortexRec recommendation engine.

This module contains the tag embedding learner, content vector builder,
matrix factorization trainer, hybrid scorer and the recommendation service
that orchestrates them.
"""
