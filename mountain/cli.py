"""CLI for building MMRs from element files and proving / verifying inclusion."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from .config import MountainConfig
from .logging import configure_logging
from .mmr import MerkleMountainRange, Proof, make_hasher

SUCCESS = "✅"
ERROR = "❌"


def _poke_yoke_path(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"{ERROR} Path not found: {path}")


def _read_elements(path: Path) -> List[bytes]:
    """Read one hex-encoded element per line, skipping blanks and # comments."""
    _poke_yoke_path(path)
    elements = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            elements.append(bytes.fromhex(line))
        except ValueError as exc:
            raise ValueError(f"{path}:{lineno}: not a hex digest") from exc
    return elements


def _build_mmr(args: argparse.Namespace, elements: Sequence[bytes]) -> MerkleMountainRange:
    mmr = MerkleMountainRange(make_hasher(args.mountain_config.hash))
    for element in elements:
        mmr.add(element)
    return mmr


def _cmd_build(args: argparse.Namespace) -> int:
    try:
        mmr = _build_mmr(args, _read_elements(Path(args.elements)))
        summary = {
            "size": mmr.size,
            "leaves": mmr.leaf_count,
            "peaks": [pos for pos, _ in mmr.peaks()],
            "root": mmr.root_hash().hex(),
        }
        print(json.dumps(summary, sort_keys=True, indent=2))
        return 0
    except (OSError, ValueError) as exc:
        print(f"{ERROR} Build failed: {exc}", file=sys.stderr)
        return 1


def _cmd_prove(args: argparse.Namespace) -> int:
    try:
        mmr = _build_mmr(args, _read_elements(Path(args.elements)))
        end = args.start if args.end is None else args.end
        proof = mmr.range_proof(args.start, end, size=args.size)
        payload = json.dumps(proof.to_dict(), indent=2)
        if args.out:
            Path(args.out).write_text(payload + "\n", encoding="utf-8")
        else:
            print(payload)
        return 0
    except (OSError, ValueError, IndexError) as exc:
        print(f"{ERROR} Prove failed: {exc}", file=sys.stderr)
        return 1


def _cmd_verify(args: argparse.Namespace) -> int:
    try:
        proof_path = Path(args.proof)
        _poke_yoke_path(proof_path)
        proof = Proof.from_dict(json.loads(proof_path.read_text(encoding="utf-8")))
        elements = _read_elements(Path(args.elements))
        root = bytes.fromhex(args.root)
        hasher = make_hasher(args.mountain_config.hash)
    except (OSError, ValueError) as exc:
        print(f"{ERROR} Verify failed: {exc}", file=sys.stderr)
        return 1

    end = args.start if args.end is None else args.end
    if not proof.verify_range_inclusion(elements, args.start, end, root, hasher):
        print(f"{ERROR} Verification failed")
        return 2
    print(f"{SUCCESS} Verification succeeded")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Merkle Mountain Range inclusion proofs",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config file (JSON, TOML or YAML)")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Build an MMR and print its size and root")
    p_build.add_argument("--elements", required=True, help="File with one hex element per line")
    p_build.set_defaults(func=_cmd_build)

    p_prove = sub.add_parser("prove", help="Print an inclusion proof for a range of leaf positions")
    p_prove.add_argument("--elements", required=True, help="File with one hex element per line")
    p_prove.add_argument("--start", type=int, required=True, help="Position of the first leaf")
    p_prove.add_argument("--end", type=int, help="Position of the last leaf (defaults to --start)")
    p_prove.add_argument("--size", type=int, help="Prove against an earlier MMR size")
    p_prove.add_argument("--out", help="Write the proof JSON here instead of stdout")
    p_prove.set_defaults(func=_cmd_prove)

    p_verify = sub.add_parser("verify", help="Verify claimed elements against a proof and root")
    p_verify.add_argument("--elements", required=True, help="File with the claimed elements, one hex per line")
    p_verify.add_argument("--proof", required=True, help="Proof JSON from 'prove'")
    p_verify.add_argument("--start", type=int, required=True, help="Position of the first leaf")
    p_verify.add_argument("--end", type=int, help="Position of the last leaf (defaults to --start)")
    p_verify.add_argument("--root", required=True, help="Trusted root hash (hex)")
    p_verify.set_defaults(func=_cmd_verify)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = MountainConfig.load(args.config)
        if args.log_level:
            config.logging = replace(config.logging, level=args.log_level)
    except (OSError, ValueError) as exc:
        print(f"{ERROR} Config error: {exc}", file=sys.stderr)
        return 1
    configure_logging(config.logging.to_options())
    args.mountain_config = config
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
