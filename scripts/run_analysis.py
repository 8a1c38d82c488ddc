#!/usr/bin/env python3
"""Run the stage-structured matrix analysis from a YAML configuration.

Builds the base and management-scenario matrices, projects each population,
computes λ / stable distribution / reproductive value / sensitivity /
elasticity, sweeps each diagonal survival entry, and writes:

    <output>/summary.json
    <output>/projection_<scenario>.csv
    <output>/*.png                      (unless --no-figures)

Usage:
    python scripts/run_analysis.py configs/default.yaml
    python scripts/run_analysis.py configs/default.yaml \\
        --scenario configs/scenarios/combined_protection.yaml --output results/combined
    python scripts/run_analysis.py configs/default.yaml --horizon 50 --no-figures
"""

import argparse
import csv
import json
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from stagepop.config import load_config
from stagepop.model import ModelResult, run_model
from stagepop.sensitivity import rank_parameters
from stagepop.types import STAGE_NAMES
from stagepop.utils import file_config_hash, timer


# ═══════════════════════════════════════════════════════════════════════
# OUTPUT
# ═══════════════════════════════════════════════════════════════════════

def write_projection_csv(path: Path, result) -> None:
    series = result.projection
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['year', *STAGE_NAMES, 'total'])
        for year, row, total in zip(series.years, series.abundances, series.totals):
            writer.writerow([int(year), *(f'{x:.6f}' for x in row), f'{total:.6f}'])


def write_figures(out_dir: Path, result: ModelResult, dpi: int) -> None:
    from stagepop.viz.plots import (
        plot_projection,
        plot_scenario_comparison,
        plot_sensitivity_heatmaps,
        plot_stage_composition,
        plot_sweep_curves,
    )
    from stagepop.viz.style import save_figure

    base = result.base
    threshold = result.config.sweep.threshold
    figures = {
        'projection_base.png': plot_projection(base.projection),
        'stage_composition_base.png': plot_stage_composition(
            base.projection, base.eigen.stable_distribution),
        'sensitivity_elasticity.png': plot_sensitivity_heatmaps(base.sensitivity),
        'survival_sweeps.png': plot_sweep_curves(result.sweeps, threshold),
        'scenario_comparison.png': plot_scenario_comparison(result.scenarios, threshold),
    }
    for name, fig in figures.items():
        save_figure(fig, out_dir / name, dpi=dpi)


def print_summary(result: ModelResult) -> None:
    base = result.base
    print(f"\n{'Scenario':<24} {'lambda':>8} {'R0':>8} {'T_gen':>8} {'N_final':>12}")
    print("-" * 64)
    for name, r in result.scenarios.items():
        print(f"{name:<24} {r.eigen.lambda_:>8.4f} {r.net_reproductive_rate:>8.3f} "
              f"{r.generation_time:>8.2f} {r.projection.totals[-1]:>12.1f}")

    v = base.eigen.stable_distribution
    u = base.eigen.reproductive_value
    print("\nBase stable distribution: " +
          ", ".join(f"{s}={x:.3f}" for s, x in zip(STAGE_NAMES, v)))
    print("Base reproductive value:  " +
          ", ".join(f"{s}={x:.3f}" for s, x in zip(STAGE_NAMES, u)))
    print("Sensitivity ranking:      " +
          ", ".join(f"{n}={s:.3f}" for n, s in rank_parameters(base.sensitivity)))
    print("Elasticity ranking:       " +
          ", ".join(f"{n}={e:.3f}" for n, e in
                    rank_parameters(base.sensitivity, by='elasticity')))

    print(f"\nSweeps (threshold lambda = {result.config.sweep.threshold:g}):")
    for target, res in result.sweeps.items():
        crossing = result.crossings[target]
        critical = result.critical_values[target]
        crossed = (f"step {crossing.step} ({crossing.value:.3f})"
                   if crossing else "not reached")
        exact = f"{critical:.4f}" if critical is not None else "n/a"
        flag = " [truncated]" if res.truncated else ""
        print(f"  {target}: {res.n_steps}/{res.requested_steps} steps{flag}, "
              f"crossing {crossed}, exact {exact}")


# ═══════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Stage-structured matrix population analysis")
    parser.add_argument('config', help="Base configuration YAML")
    parser.add_argument('--scenario', default=None,
                        help="Override YAML merged on top of the base config")
    parser.add_argument('--output', default=None,
                        help="Output directory (default: output.directory)")
    parser.add_argument('--horizon', type=int, default=None,
                        help="Override projection.horizon")
    parser.add_argument('--backend', choices=['numpy', 'scipy'], default=None,
                        help="Override analysis.eigen_backend")
    parser.add_argument('--no-figures', action='store_true',
                        help="Skip PNG output")
    args = parser.parse_args(argv)

    overrides = {}
    if args.horizon is not None:
        overrides['projection'] = {'horizon': args.horizon}
    if args.backend is not None:
        overrides['analysis'] = {'eigen_backend': args.backend}

    config = load_config(args.config, scenario_path=args.scenario,
                         sweep_overrides=overrides or None)
    out_dir = Path(args.output or config.output.directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    print(f"Config: {args.config}" + (f" + {args.scenario}" if args.scenario else ""))
    print(f"Scenarios: {len(config.scenarios)} + base, horizon {config.projection.horizon}")

    with timer("analysis"):
        result = run_model(config)

    summary = result.summary()
    summary['config'] = str(args.config)
    summary['config_sha256'] = file_config_hash(args.config)
    with open(out_dir / 'summary.json', 'w') as f:
        json.dump(summary, f, indent=2)

    for name, r in result.scenarios.items():
        write_projection_csv(out_dir / f'projection_{name}.csv', r)

    if config.output.figures and not args.no_figures:
        write_figures(out_dir, result, config.output.dpi)

    print_summary(result)
    print(f"\nResults written to {out_dir}/")
    return 0


if __name__ == '__main__':
    sys.exit(main())
