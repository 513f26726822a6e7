"""
Elora Assistant: policy-governed tutoring responses.
"""
