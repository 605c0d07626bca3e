"""
Aleph Quiz - Hebrew reading games backed by generated content.

The interesting part is the prefetch buffer in aleph_quiz.prefetch: it keeps
a few fully illustrated questions ready ahead of the learner so that
multi-second generation and image latency never shows up between questions.
"""

__version__ = "1.0.0"
