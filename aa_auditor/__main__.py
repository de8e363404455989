"""aa-auditor — automated WCAG 2.2 AA checks over design layer trees.

Usage: aa-auditor audit <bundle.json>... [options]

Rules are auto-discovered from aa_auditor/rules/.
Each rule module's docstring is its documentation.
Run `aa-auditor help <rule-id>` for full rule docs.

Environment variables / .env loading:
  OS environment variables are always used first.
  If a variable is not set, aa-auditor looks for a .env file starting from
  the current directory and walking up, stopping at the nearest .git boundary.
  Use --env-file to override the .env location explicitly.

  AA_AUDITOR_CONFIG   path to the JSON config (default: .aa-auditor.json)
  AA_AUDITOR_FAIL_ON  comma-separated severities that fail the run
"""

import argparse
import sys
import uuid
from datetime import datetime, timezone

from aa_auditor import registry
from aa_auditor.core.checklist import MANUAL_CHECK_CATALOG
from aa_auditor.core.config import ConfigError, load_config, load_env, parse_severity_list
from aa_auditor.core.report import format_json, format_text
from aa_auditor.core.sources import PayloadError, load_payload_file
from aa_auditor.runner import run_audit


def _short_doc(rule_id: str) -> str:
    doc = (registry.module_for(rule_id).__doc__ or '').strip()
    return doc.splitlines()[0] if doc else registry.get(rule_id).help


def _build_parser() -> argparse.ArgumentParser:
    epilog = (
        'Examples:\n'
        '  aa-auditor audit checkout.json\n'
        '  aa-auditor audit bundles/*.json --json > report.json\n'
        '  aa-auditor audit checkout.json --config ci.aa-auditor.json --fail-on blocker\n'
        '  aa-auditor rules\n'
        '  aa-auditor help WCAG-1.4.3-text-contrast-minimum\n'
        '  aa-auditor checklist\n'
    )
    parser = argparse.ArgumentParser(
        prog='aa-auditor',
        description='Automated WCAG 2.2 AA checks over design layer trees.',
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    # Global --env-file option before subcommand
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        default=None,
        help='Path to .env file (default: walk up from cwd to .git boundary)',
    )
    sub = parser.add_subparsers(dest='command', help='Command to run')

    audit = sub.add_parser('audit', help='Audit one or more payload bundles')
    audit.add_argument('payloads', nargs='+', metavar='PAYLOAD', help='Bundle JSON file(s), one per target')
    audit.add_argument('-c', '--config', help='JSON config file (default: .aa-auditor.json)')
    audit.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')
    audit.add_argument(
        '-f',
        '--fail-on',
        metavar='SEVERITIES',
        help='Comma-separated severities that make the run exit 1 (overrides config)',
    )
    audit.add_argument('--no-manual', action='store_true', help='Omit the manual checklist from text output')

    sub.add_parser('rules', help='List available rules')

    # `help` prints the full module docstring for a rule
    help_parser = sub.add_parser('help', help='Print full docs for a rule')
    help_parser.add_argument('rule', nargs='?', help='Rule id')

    sub.add_parser('checklist', help='Print the manual review checklist')
    return parser


def _print_rules() -> None:
    for rule_id, rule in sorted(registry.all_rules().items()):
        print(f'  {rule_id:<36} {rule.default_severity:<9} {_short_doc(rule_id)}')


def _print_help(rule_id: str | None) -> None:
    """Print full module docstring for a rule."""
    rules = registry.all_rules()

    if rule_id is None:
        print('Available rules:\n')
        _print_rules()
        print('\nRun: aa-auditor help <rule-id> for full docs.')
        return

    if rule_id not in rules:
        print(f'Unknown rule: {rule_id}', file=sys.stderr)
        print(f'Available: {", ".join(sorted(rules))}', file=sys.stderr)
        sys.exit(1)

    doc = (registry.module_for(rule_id).__doc__ or '').strip()
    if not doc:
        print(f'(No module docs for {rule_id!r})')
        return
    print(doc)


def _print_checklist() -> None:
    for entry in MANUAL_CHECK_CATALOG:
        print(f'  {entry.id:<20} {entry.criterion:<7} {entry.prompt}')


def _run_audit(args: argparse.Namespace) -> int:
    try:
        defaults = {rule_id: rule.default_severity for rule_id, rule in registry.all_rules().items()}
        config, source = load_config(defaults, args.config)
        if args.fail_on:
            config.fail_on = parse_severity_list(
                [part.strip() for part in args.fail_on.split(',') if part.strip()], '--fail-on'
            )
        payloads = [load_payload_file(path) for path in args.payloads]
    except (ConfigError, PayloadError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    print(f'aa-auditor: config from {source}', file=sys.stderr)

    result = run_audit(payloads, config, now=datetime.now(timezone.utc), run_id=uuid.uuid4().hex[:12])
    report = result.report

    # Output
    if args.json:
        print(format_json(report))
    else:
        print(format_text(report, show_manual=not args.no_manual))

    for warning in report.summary.warnings:
        print(f'aa-auditor: warning: {warning}', file=sys.stderr)

    # CI gate after output, so the report is visible on failure
    if result.should_fail:
        print(f'aa-auditor: FAIL (gate: {", ".join(config.fail_on)})', file=sys.stderr)
        return 1
    return 0


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    # Load .env before anything else; OS env vars always win
    env_path = load_env(env_file=getattr(args, 'env_file', None))
    if env_path:
        print(f'aa-auditor: loaded {env_path}', file=sys.stderr)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == 'help':
        _print_help(args.rule)
        return
    if args.command == 'rules':
        _print_rules()
        return
    if args.command == 'checklist':
        _print_checklist()
        return

    sys.exit(_run_audit(args))


if __name__ == '__main__':
    main()
