"""Configuration for aa-auditor: .env loading plus the JSON audit config.

Environment load order (first wins):
  1. Existing OS environment variables, never overwritten.
  2. .env file at --env-file path (if explicitly provided).
  3. .env file walking up from cwd, stopping at .git (file or dir).

Audit config lookup (first found wins):
  1. --config PATH
  2. $AA_AUDITOR_CONFIG
  3. .aa-auditor.json walking up from cwd, stopping at .git
  4. built-in defaults

Config file shape (every key optional):

    {
      "failOn": ["blocker", "critical"],
      "rules": {"WCAG-1.4.11-nontext-contrast": {"enabled": true, "severity": "minor"}},
      "suppressions": [
        {"ruleId": "WCAG-1.4.3-text-contrast-minimum", "targetId": "2:1",
         "reason": "Legacy banner", "expiresOn": "2027-01-01", "owner": "design-systems"}
      ],
      "designTokens": {"text.primary": "#111827"}
    }

$AA_AUDITOR_FAIL_ON (comma-separated severities) overrides failOn.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aa_auditor.core.color import is_valid_hex_color
from aa_auditor.core.types import SEVERITIES, Rule, Suppression

CONFIG_FILENAME = '.aa-auditor.json'
CONFIG_ENV_VAR = 'AA_AUDITOR_CONFIG'
FAIL_ON_ENV_VAR = 'AA_AUDITOR_FAIL_ON'

DEFAULT_FAIL_ON = ['blocker', 'critical']
UNKNOWN_RULE_SEVERITY = 'minor'


class ConfigError(ValueError):
    """Invalid configuration. The message names the offending key."""


@dataclass
class RuleConfig:
    enabled: bool = True
    severity: str | None = None


@dataclass
class AuditConfig:
    fail_on: list[str] = field(default_factory=lambda: list(DEFAULT_FAIL_ON))
    rules: dict[str, RuleConfig] = field(default_factory=dict)
    suppressions: list[Suppression] = field(default_factory=list)
    design_tokens: dict[str, str] = field(default_factory=dict)

    def rule_config(self, rule: Rule) -> RuleConfig:
        """Settings for a rule, falling back to enabled at its default severity."""
        configured = self.rules.get(rule.id)
        if configured is None:
            return RuleConfig(enabled=True, severity=rule.default_severity)
        return RuleConfig(configured.enabled, configured.severity or rule.default_severity)


# ── .env ──────────────────────────────────────────────────────────────────


def find_upwards(start: Path, filename: str) -> Path | None:
    """Walk up from start, return the first `filename` found, stop at the .git boundary."""
    current = start.resolve()
    while True:
        candidate = current / filename
        if candidate.is_file():
            return candidate
        # .git can be a dir (normal clone) or a file (worktree)
        if (current / '.git').exists():
            return None
        parent = current.parent
        if parent == current:
            return None
        current = parent


def parse_dotenv(path: Path) -> dict[str, str]:
    """Parse KEY=value lines. Comments, blank lines and an `export ` prefix are tolerated."""
    result: dict[str, str] = {}
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        if line.startswith('export '):
            line = line[len('export ') :]
        key, _, raw_value = line.partition('=')
        key = key.strip()
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
            value = value[1:-1]
        if key:
            result[key] = value
    return result


def load_env(env_file: str | None = None) -> Path | None:
    """Load .env into os.environ for keys not already set. Returns the path loaded, if any."""
    if env_file:
        path = Path(env_file)
        if not path.is_file():
            return None
    else:
        path = find_upwards(Path.cwd(), '.env')
        if path is None:
            return None

    for key, value in parse_dotenv(path).items():
        os.environ.setdefault(key, value)
    return path


# ── audit config ──────────────────────────────────────────────────────────


def validate_config(raw: Any, rule_defaults: dict[str, str]) -> AuditConfig:
    """Validate a parsed config document into an AuditConfig. Raises ConfigError.

    rule_defaults maps every known rule id to its default severity; ids
    outside it are treated as unknown.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError('Config root must be a JSON object.')

    fail_on = DEFAULT_FAIL_ON
    if 'failOn' in raw:
        fail_on = parse_severity_list(raw['failOn'], 'failOn')

    return AuditConfig(
        fail_on=list(fail_on),
        rules=_parse_rules(raw.get('rules'), rule_defaults),
        suppressions=_parse_suppressions(raw.get('suppressions')),
        design_tokens=_parse_design_tokens(raw.get('designTokens')),
    )


def parse_severity_list(value: Any, label: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f'{label} must be a non-empty array of severities.')
    return [_parse_severity(entry, f'{label}[{idx}]') for idx, entry in enumerate(value)]


def _parse_severity(value: Any, label: str) -> str:
    if not isinstance(value, str) or value not in SEVERITIES:
        raise ConfigError(f'{label} must be one of: {", ".join(SEVERITIES)}.')
    return value


def _parse_rules(value: Any, rule_defaults: dict[str, str]) -> dict[str, RuleConfig]:
    rules = {rule_id: RuleConfig(True, severity) for rule_id, severity in rule_defaults.items()}
    if value is None:
        return rules
    if not isinstance(value, dict):
        raise ConfigError('rules must be an object keyed by rule id.')

    for rule_id, entry in value.items():
        if not isinstance(entry, dict):
            raise ConfigError(f'rules.{rule_id} must be an object.')
        enabled = entry.get('enabled')
        if enabled is not None and not isinstance(enabled, bool):
            raise ConfigError(f'rules.{rule_id}.enabled must be true or false.')

        known = rules.get(rule_id)
        if known is None:
            # unknown ids stay off unless enabled explicitly
            severity = entry.get('severity')
            rules[rule_id] = RuleConfig(
                enabled=bool(enabled),
                severity=severity if severity in SEVERITIES else UNKNOWN_RULE_SEVERITY,
            )
            continue

        severity = known.severity
        if entry.get('severity') is not None:
            severity = _parse_severity(entry['severity'], f'rules.{rule_id}.severity')
        rules[rule_id] = RuleConfig(known.enabled if enabled is None else enabled, severity)
    return rules


def _parse_suppressions(value: Any) -> list[Suppression]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError('suppressions must be an array.')

    out = []
    for idx, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigError(f'suppressions[{idx}] must be an object.')
        owner = item.get('owner')
        out.append(
            Suppression(
                rule_id=_required_string(item.get('ruleId'), f'suppressions[{idx}].ruleId'),
                target_id=_required_string(item.get('targetId'), f'suppressions[{idx}].targetId'),
                reason=_required_string(item.get('reason'), f'suppressions[{idx}].reason'),
                expires_on=_required_string(item.get('expiresOn'), f'suppressions[{idx}].expiresOn'),
                owner=None if owner is None else _required_string(owner, f'suppressions[{idx}].owner'),
            )
        )
    return out


def _parse_design_tokens(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError('designTokens must be an object of token -> hex color.')

    out = {}
    for token, raw in value.items():
        name = token.strip()
        if not name:
            raise ConfigError('designTokens contains an empty token name.')
        if not isinstance(raw, str) or not raw.strip():
            raise ConfigError(f'designTokens.{name} must be a non-empty hex string.')
        if not is_valid_hex_color(raw):
            raise ConfigError(
                f'designTokens.{name} must be a valid hex color (#RGB, #RGBA, #RRGGBB, or #RRGGBBAA).'
            )
        out[name] = raw.strip()
    return out


def _required_string(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f'{label} must be a non-empty string.')
    return value.strip()


def apply_env_overrides(config: AuditConfig, environ: dict[str, str] | None = None) -> AuditConfig:
    """Apply $AA_AUDITOR_FAIL_ON on top of a validated config."""
    environ = os.environ if environ is None else environ
    raw = environ.get(FAIL_ON_ENV_VAR, '').strip()
    if raw:
        config.fail_on = parse_severity_list([part.strip() for part in raw.split(',') if part.strip()], FAIL_ON_ENV_VAR)
    return config


def load_config(rule_defaults: dict[str, str], path: str | None = None) -> tuple[AuditConfig, str]:
    """Locate, parse and validate the audit config. Returns (config, source description)."""
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        config_path = Path(explicit)
        if not config_path.is_file():
            raise ConfigError(f'Config file not found: {explicit}')
    else:
        config_path = find_upwards(Path.cwd(), CONFIG_FILENAME)

    if config_path is None:
        return apply_env_overrides(validate_config({}, rule_defaults)), 'defaults'

    try:
        raw = json.loads(config_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ConfigError(f'{config_path}: invalid JSON ({e.msg} at line {e.lineno})') from e
    return apply_env_overrides(validate_config(raw, rule_defaults)), str(config_path)
