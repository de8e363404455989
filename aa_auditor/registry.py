"""Rule registry.

Every module in aa_auditor/rules/ that defines a module-level `rule` of type
Rule is registered under the rule's id. Modules whose name starts with an
underscore are skipped. The defining module is kept alongside, since its
docstring doubles as the rule's `help` text.
"""

import importlib
import pkgutil
from types import ModuleType

from aa_auditor.core.types import Rule

RULES_PACKAGE = 'aa_auditor.rules'

_registry: dict[str, Rule] = {}
_modules: dict[str, ModuleType] = {}


def scan(package_name: str) -> dict[str, ModuleType]:
    """Import each public module of a package and map rule id to module, in module-name order."""
    package = importlib.import_module(package_name)
    found: dict[str, ModuleType] = {}
    names = sorted(name for _finder, name, ispkg in pkgutil.iter_modules(package.__path__) if not ispkg)
    for name in names:
        if name.startswith('_'):
            continue
        module = importlib.import_module(f'{package_name}.{name}')
        rule = getattr(module, 'rule', None)
        if not isinstance(rule, Rule):
            continue
        if rule.id in found:
            raise ValueError(f'Duplicate rule id {rule.id} in {found[rule.id].__name__} and {module.__name__}')
        found[rule.id] = module
    return found


def discover() -> dict[str, Rule]:
    """Scan the rules package once and return the registry."""
    if not _registry:
        for rule_id, module in scan(RULES_PACKAGE).items():
            _registry[rule_id] = module.rule
            _modules[rule_id] = module
    return _registry


def get(rule_id: str) -> Rule:
    reg = discover()
    if rule_id not in reg:
        raise KeyError(f'Unknown rule: {rule_id}. Available: {", ".join(sorted(reg))}')
    return reg[rule_id]


def all_rules() -> dict[str, Rule]:
    return discover()


def module_for(rule_id: str) -> ModuleType:
    """The module defining a rule. Its docstring is the rule's documentation."""
    get(rule_id)
    return _modules[rule_id]
