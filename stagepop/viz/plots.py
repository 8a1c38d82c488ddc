"""Figures for projections, sweeps and sensitivity analysis.

Every function:
  - Accepts stagepop result objects as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``stagepop.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Dict, Mapping, Optional, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from stagepop.types import STAGE_NAMES, ProjectionSeries, SensitivityResult, Stage, SweepResult
from stagepop.viz.style import (
    ACCENT_COLORS,
    ENTRY_COLORS,
    HEATMAP_CMAP,
    STAGE_COLORS,
    TEXT_COLOR,
    dark_figure,
    dark_legend,
    save_figure,
)

if TYPE_CHECKING:
    from stagepop.scenarios import ScenarioResult


STAGE_LABELS = ['Juvenile', 'Subadult', 'Adult']


# ═══════════════════════════════════════════════════════════════════════
# 1. PROJECTION TRAJECTORY
# ═══════════════════════════════════════════════════════════════════════

def plot_projection(
    series: ProjectionSeries,
    title: str = 'Projected Female Abundance',
    log_scale: bool = False,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Per-stage and total abundance over the projection horizon.

    Args:
        series: ProjectionSeries from project().
        title: Axes title.
        log_scale: Plot abundance on a log axis.
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    years = series.years
    fig, ax = dark_figure()

    for stage, label in zip(Stage, STAGE_LABELS):
        ax.plot(years, series.stage(stage), color=STAGE_COLORS[STAGE_NAMES[stage]],
                linewidth=2, label=label)
    ax.plot(years, series.totals, color=TEXT_COLOR, linewidth=2.5,
            linestyle='--', label='Total')

    if log_scale:
        ax.set_yscale('log')
    else:
        ax.set_ylim(bottom=0)
    ax.set_xlim(0, max(series.n_years - 1, 1))
    ax.set_xlabel('Year', fontsize=12)
    ax.set_ylabel('Abundance (females)', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    dark_legend(ax, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. STAGE COMPOSITION
# ═══════════════════════════════════════════════════════════════════════

def plot_stage_composition(
    series: ProjectionSeries,
    stable_distribution: Optional[np.ndarray] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Stacked stage proportions over time, converging to the stable distribution.

    Args:
        series: ProjectionSeries.
        stable_distribution: Optional v from analyze_eigen(); drawn as
            dashed cumulative reference lines.
        save_path: Optional save path.
    """
    years = series.years
    props = np.nan_to_num(series.proportions())
    fig, ax = dark_figure()

    colors = [STAGE_COLORS[name] for name in STAGE_NAMES]
    ax.stackplot(years, props.T, labels=STAGE_LABELS, colors=colors, alpha=0.85)

    if stable_distribution is not None:
        for level in np.cumsum(stable_distribution)[:-1]:
            ax.axhline(level, color=TEXT_COLOR, linestyle='--', linewidth=1, alpha=0.7)

    ax.set_xlim(0, max(series.n_years - 1, 1))
    ax.set_ylim(0, 1)
    ax.set_xlabel('Year', fontsize=12)
    ax.set_ylabel('Proportion of population', fontsize=12)
    ax.set_title('Stage Composition', fontsize=14, fontweight='bold')
    dark_legend(ax, fontsize=10, loc='upper right')

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 3. SURVIVAL SWEEPS
# ═══════════════════════════════════════════════════════════════════════

def plot_sweep_curves(
    sweeps: Mapping[str, SweepResult],
    threshold: float = 1.0,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """λ against survival value for each swept diagonal entry.

    Truncated sweeps end with an open marker at the last admissible value.
    """
    fig, ax = dark_figure()

    for i, (target, res) in enumerate(sweeps.items()):
        color = ENTRY_COLORS.get(target, ACCENT_COLORS[i % len(ACCENT_COLORS)])
        x = np.concatenate([[res.base_value], res.values])
        y = np.concatenate([[res.base_lambda], res.lambdas])
        ax.plot(x, y, color=color, linewidth=2, marker='o', markersize=3,
                label=f'{target}' + (' (truncated)' if res.truncated else ''))
        if res.truncated:
            ax.plot(x[-1], y[-1], marker='o', markersize=9, markerfacecolor='none',
                    markeredgecolor=color)

    ax.axhline(threshold, color=TEXT_COLOR, linestyle=':', linewidth=1.5,
               alpha=0.8, label=f'λ = {threshold:g}')
    ax.set_xlabel('Survival probability', fontsize=12)
    ax.set_ylabel('Asymptotic growth rate λ', fontsize=12)
    ax.set_title('Changing Survival of Different Life Stages',
                 fontsize=14, fontweight='bold')
    dark_legend(ax, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 4. SENSITIVITY / ELASTICITY HEATMAPS
# ═══════════════════════════════════════════════════════════════════════

def plot_sensitivity_heatmaps(
    result: SensitivityResult,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Side-by-side annotated heatmaps of S and E."""
    fig, axes = dark_figure(1, 2, figsize=(12, 5))

    for ax, mat, title in ((axes[0], result.sensitivity, 'Sensitivity'),
                           (axes[1], result.elasticity, 'Elasticity')):
        im = ax.imshow(mat, cmap=HEATMAP_CMAP, vmin=0)
        for (i, j), val in np.ndenumerate(mat):
            ax.text(j, i, f'{val:.3f}', ha='center', va='center',
                    color=TEXT_COLOR, fontsize=11)
        ax.set_xticks(range(len(STAGE_LABELS)))
        ax.set_yticks(range(len(STAGE_LABELS)))
        ax.set_xticklabels(STAGE_LABELS)
        ax.set_yticklabels(STAGE_LABELS)
        ax.set_xlabel('From stage', fontsize=11)
        ax.set_ylabel('To stage', fontsize=11)
        ax.set_title(title, fontsize=13, fontweight='bold')
        ax.grid(False)
        cbar = fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
        cbar.ax.tick_params(colors=TEXT_COLOR)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 5. SCENARIO COMPARISON
# ═══════════════════════════════════════════════════════════════════════

def plot_scenario_comparison(
    results: Dict[str, 'ScenarioResult'],
    threshold: float = 1.0,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """λ per scenario (left) and total-abundance trajectories (right)."""
    fig, (ax_bar, ax_traj) = dark_figure(1, 2, figsize=(14, 5))
    names = list(results)
    lambdas = [results[n].eigen.lambda_ for n in names]
    colors = [ACCENT_COLORS[i % len(ACCENT_COLORS)] for i in range(len(names))]

    ax_bar.bar(range(len(names)), lambdas, color=colors, alpha=0.85)
    ax_bar.axhline(threshold, color=TEXT_COLOR, linestyle=':', linewidth=1.5)
    ax_bar.set_xticks(range(len(names)))
    ax_bar.set_xticklabels(names, rotation=20, ha='right')
    ax_bar.set_ylabel('λ', fontsize=12)
    ax_bar.set_title('Asymptotic Growth Rate', fontsize=13, fontweight='bold')

    for name, color in zip(names, colors):
        series = results[name].projection
        ax_traj.plot(series.years, series.totals, color=color, linewidth=2, label=name)
    ax_traj.set_yscale('log')
    ax_traj.set_xlabel('Year', fontsize=12)
    ax_traj.set_ylabel('Total abundance', fontsize=12)
    ax_traj.set_title('Projected Abundance by Scenario', fontsize=13, fontweight='bold')
    dark_legend(ax_traj, fontsize=9)

    if save_path:
        save_figure(fig, save_path)
    return fig
