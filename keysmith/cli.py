#!/usr/bin/env python3
"""
keysmith CLI
============
Command-line interface for password and passphrase generation.

Usage:
    keysmith generate -l 20 -n 5
    keysmith generate --pattern LLDDS
    keysmith generate --mode diceware -l 6 --separator random
    keysmith mutate "hunter2" --kind replace --strength 2
    keysmith score "correct horse battery staple"
    keysmith charsets
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.table import Table

from keysmith import __version__
from keysmith.settings import get_setting

# =============================================================================
# Constants
# =============================================================================

MODES = ['character', 'pattern', 'diceware', 'pronounceable']

MUTATION_KINDS = ['replace', 'swap', 'insert', 'lengthen', 'remove', 'mixed']

POLICY_NAMES = ['windows-ad', 'pci-dss', 'nist-high']

# =============================================================================
# Utilities
# =============================================================================

class Output:
    """Handles CLI output with quiet mode support."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self.console = Console() if sys.stdout.isatty() else None

    def print(self, *args, **kwargs):
        if not self.quiet:
            print(*args, **kwargs)

    def secret(self, value: str):
        """Secrets are the command's result and ignore quiet mode."""
        print(value)

    def error(self, msg: str):
        print(f"Error: {msg}", file=sys.stderr)

    def success(self, msg: str):
        if not self.quiet:
            print(f"OK: {msg}")

    def table(self, headers: list, rows: list, title: str = None):
        """Print a table (rich on a terminal, aligned text otherwise)."""
        if self.quiet:
            return

        if self.console is not None:
            table = Table(title=title)
            for h in headers:
                table.add_column(str(h))
            for row in rows:
                table.add_row(*(str(c) for c in row))
            self.console.print(table)
            return

        col_widths = [max(len(str(h)), max((len(str(r[i])) for r in rows), default=0)) + 2
                      for i, h in enumerate(headers)]
        if title:
            print(title)
        header_line = ''.join(str(h).ljust(w) for h, w in zip(headers, col_widths))
        print(header_line)
        print('-' * len(header_line))
        for row in rows:
            print(''.join(str(c).ljust(w) for c, w in zip(row, col_widths)))


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_request(args):
    """Translate generate flags into a GenerationRequest."""
    from keysmith.models import GenerationRequest, Mode

    mode = args.mode or ('pattern' if args.pattern else 'character')

    # unset length is resolved per mode by GenerationRequest
    return GenerationRequest(
        mode=Mode.parse(mode),
        length=args.length,
        count=args.count if args.count is not None else get_setting("generation.default_count", 1),
        allowed=args.allowed or get_setting("generation.default_allowed", "allprint"),
        excluded=args.exclude or "",
        included=args.include or "",
        avoid_repeat=args.avoid_repeat,
        separator=args.separator if args.separator is not None
        else get_setting("generation.default_separator", " "),
        separator_set=args.separator_set or get_setting("generation.random_separator_set", "symbol2"),
        pattern=args.pattern,
        seed=args.seed,
        strict_alternation=False if args.loose else None,
    )


def report_rows(secrets, scorer) -> list:
    from keysmith.strength import strength_bar

    rows = []
    for i, secret in enumerate(secrets, 1):
        report = scorer.score(secret)
        rows.append([
            i,
            f"{report.entropy_bits:.1f}",
            strength_bar(report.entropy_bits),
            report.category.value,
            '; '.join(report.suggestions) or '-',
        ])
    return rows


# =============================================================================
# Commands
# =============================================================================

def cmd_generate(args, out: Output):
    """Generate secrets."""
    from keysmith import KeySmith
    from keysmith.models import MutationSpec

    request = build_request(args)
    ks = KeySmith()

    if args.policy:
        from keysmith.policy import apply_policy
        details = apply_policy(args.policy, request)
        out.print(f"Policy: {details.label} (min {details.minimum_length} chars, "
                  f"~{details.recommended_entropy_bits:.0f} bits recommended)", file=sys.stderr)

    if args.clipboard and request.count != 1:
        out.error("--clipboard copies a single secret; use -n 1")
        return 1

    secrets = ks.generate(request)

    if args.mutate:
        spec = MutationSpec(kind=args.mutate, strength=args.mutate_strength,
                            increase=args.mutate_increase, seed=args.seed)
        secrets = ks.mutate_batch(secrets, spec, request)

    try:
        if args.strength:
            out.table(['#', 'Bits', 'Strength', 'Category', 'Suggestions'],
                      report_rows(secrets, ks.scorer), title="Strength")

        if args.stats:
            quality = ks.stats(secrets)
            out.table(['Metric', 'Value'], [
                ['Secrets', quality.count],
                ['Mean entropy (bits/char)', f"{quality.mean:.3f}"],
                ['Variance', f"{quality.variance:.4f}"],
                ['Skewness', f"{quality.skewness:.4f}"],
                ['Kurtosis', f"{quality.kurtosis:.4f}"],
            ], title="Batch statistics")

        if args.clipboard:
            ks.copy(secrets[0])
            out.success("Secret copied to clipboard")
            return 0

        for secret in secrets:
            out.secret(secret.value)
    finally:
        for secret in secrets:
            secret.wipe()
    return 0


def cmd_mutate(args, out: Output):
    """Mutate an existing secret."""
    from keysmith import KeySmith
    from keysmith.models import MutationSpec

    ks = KeySmith()
    spec = MutationSpec(kind=args.kind, strength=args.strength,
                        increase=args.increase, seed=args.seed)
    mutated = ks.mutate(args.text, spec)
    out.secret(mutated)

    if args.verbose:
        report = ks.score(mutated)
        out.print(f"Estimated: {report.entropy_bits:.1f} bits ({report.category.value})", file=sys.stderr)
    return 0


def cmd_score(args, out: Output):
    """Estimate the strength of a secret."""
    from keysmith import KeySmith
    from keysmith.strength import strength_bar

    text = args.text
    if text is None:
        text = sys.stdin.readline().rstrip('\r\n')

    report = KeySmith().score(text)

    print(f"Entropy:  {report.entropy_bits:.1f} bits {strength_bar(report.entropy_bits)}")
    print(f"Category: {report.category.value}")
    if report.suggestions:
        print("Suggestions:")
        for hint in report.suggestions:
            print(f"  - {hint}")
    return 0


def cmd_charsets(args, out: Output):
    """List predefined character sets."""
    from keysmith.generators.charsets import default_registry

    registry = default_registry()
    rows = []
    for name in registry.names():
        charset = registry.get(name)
        rows.append([name, len(charset), charset.as_string()])
    out.table(['Name', 'Size', 'Characters'], rows, title="Character sets")
    return 0


def cmd_policies(args, out: Output):
    """List password policies."""
    from keysmith.policy import list_policies

    rows = [[name, p['label'], p['minimum_length'], p['description']]
            for name, p in list_policies().items()]
    out.table(['Name', 'Label', 'Min length', 'Description'], rows, title="Policies")
    return 0


# =============================================================================
# Main
# =============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='keysmith',
        description='keysmith - Password & Passphrase Generator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s generate -l 20 -n 5 -a upperletter,lowerletter,digit
  %(prog)s generate --pattern ULLLDDSS
  %(prog)s generate --mode diceware -l 6 --separator random --strength
  %(prog)s generate --mode pronounceable -l 12
  %(prog)s generate --policy nist-high -c
  %(prog)s mutate "hunter2" --kind replace --strength 2
  %(prog)s score "correct horse battery staple"
"""
    )

    parser.add_argument('--version', '-V', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--quiet', '-q', action='store_true', help='Suppress non-essential output')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # --- generate ---
    p = subparsers.add_parser('generate', aliases=['gen', 'g'], help='Generate secrets')
    p.add_argument('-m', '--mode', choices=MODES, help='Generation mode (default: character)')
    p.add_argument('-l', '--length', type=int,
                   help='Length in characters, or words for diceware (default from app.yaml)')
    p.add_argument('-n', '--count', type=int, help='Number of secrets (default: 1)')
    p.add_argument('-a', '--allowed', help='Comma-separated character set names (default: allprint)')
    p.add_argument('-x', '--exclude', help='Characters to exclude')
    p.add_argument('-i', '--include', help='Characters to force into the set')
    p.add_argument('-r', '--avoid-repeat', action='store_true', help='Never repeat a character')
    p.add_argument('-p', '--pattern', help='Pattern template, e.g. LLDDS (implies --mode pattern)')
    p.add_argument('-s', '--separator', help="Diceware separator, or 'random'")
    p.add_argument('--separator-set', help='Character set for random separators (default: symbol2)')
    p.add_argument('--loose', action='store_true', help='Allow repeated consonants/vowels in pronounceable mode')
    p.add_argument('--policy', choices=POLICY_NAMES, help='Apply a password policy')
    p.add_argument('--mutate', choices=MUTATION_KINDS, help='Mutate each generated secret')
    p.add_argument('--mutate-strength', type=int, default=1, help='Number of mutation edits (default: 1)')
    p.add_argument('--mutate-increase', type=int, default=0, help='Characters appended after mutation')
    p.add_argument('--seed', type=int, help='Deterministic seed (testing only, never for real secrets)')
    p.add_argument('--strength', action='store_true', help='Show strength table')
    p.add_argument('--stats', action='store_true', help='Show batch entropy statistics')
    p.add_argument('-c', '--clipboard', action='store_true', help='Copy to clipboard instead of printing')
    p.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')

    # --- mutate ---
    p = subparsers.add_parser('mutate', aliases=['mut'], help='Mutate an existing secret')
    p.add_argument('text', help='Secret to mutate')
    p.add_argument('--kind', '-k', choices=MUTATION_KINDS, default='mixed', help='Edit type (default: mixed)')
    p.add_argument('--strength', type=int, default=1, help='Number of edits (default: 1)')
    p.add_argument('--increase', type=int, default=0, help='Characters appended after the edits')
    p.add_argument('--seed', type=int, help='Deterministic seed (testing only)')
    p.add_argument('-v', '--verbose', action='store_true', help='Show estimated strength')

    # --- score ---
    p = subparsers.add_parser('score', aliases=['s'], help='Estimate strength of a secret')
    p.add_argument('text', nargs='?', help='Secret to score (read from stdin if omitted)')
    p.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')

    # --- charsets ---
    subparsers.add_parser('charsets', help='List predefined character sets')

    # --- policies ---
    subparsers.add_parser('policies', help='List password policies')

    # Parse
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    # Handle aliases
    cmd_map = {
        'gen': 'generate', 'g': 'generate',
        'mut': 'mutate',
        's': 'score',
    }
    command = cmd_map.get(args.command, args.command)

    setup_logging(getattr(args, 'verbose', False))
    out = Output(quiet=getattr(args, 'quiet', False))

    # Dispatch
    commands = {
        'generate': cmd_generate,
        'mutate': cmd_mutate,
        'score': cmd_score,
        'charsets': cmd_charsets,
        'policies': cmd_policies,
    }

    handler = commands.get(command)
    if handler:
        try:
            return handler(args, out)
        except KeyboardInterrupt:
            out.print("\nCancelled.")
            return 130
        except Exception as e:
            out.error(str(e))
            if getattr(args, 'verbose', False):
                import traceback
                traceback.print_exc()
            return 1

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
