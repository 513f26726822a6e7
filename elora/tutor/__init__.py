"""
Elora Assistant: Tutoring Package

Request pipeline from raw payload to a plain-text, policy-checked reply.
"""
from elora.tutor.pipeline import TutoringPipeline, TutoringResponse
from elora.tutor.disclosure import DisclosurePolicy, LexicalDisclosurePolicy, disclosure_prohibited
from elora.tutor.access_policy import AccessPolicy

__all__ = [
    "TutoringPipeline", "TutoringResponse",
    "DisclosurePolicy", "LexicalDisclosurePolicy", "disclosure_prohibited",
    "AccessPolicy",
]
