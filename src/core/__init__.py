"""Core domain package for turnguard.

Core contains rule evaluation, history rewriting, persona prompting and the
turn pipeline without any OpenAI or storage-specific code, keeping the
business logic portable.
"""
