"""aa_auditor.core — Foundation layer.

Contains colour math, type definitions, payload normalization, background
resolution, the PNG decoder and screenshot sampler, recommendations,
suppressions, config loading and the report builder.
This module has NO dependencies on aa_auditor.rules or aa_auditor.registry.
Only stdlib, numpy, and PIL are allowed here.
"""
