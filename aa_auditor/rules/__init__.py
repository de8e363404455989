"""Automated WCAG rules, one module per rule.

A module here registers itself by defining a module-level `rule`; see
aa_auditor.registry. Nothing is imported eagerly.
"""
