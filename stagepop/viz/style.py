"""Dark theme for stagepop figures.

Stage and entry colours are shared by every plot, so a juvenile curve in a
projection has the same colour as the S_JJ curve in a sweep.
"""

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np

# ═══════════════════════════════════════════════════════════════════════
# COLOR PALETTE
# ═══════════════════════════════════════════════════════════════════════

DARK_BG = '#1a1a2e'
DARK_PANEL = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

STAGE_COLORS = {
    'juvenile': '#48c9b0',
    'subadult': '#3498db',
    'adult':    '#e94560',
}

# Sweep targets take the colour of the stage whose survival they hold
ENTRY_COLORS = {
    'S_JJ': STAGE_COLORS['juvenile'],
    'S_SS': STAGE_COLORS['subadult'],
    'S_AA': STAGE_COLORS['adult'],
}

# Scenarios: stage colours first, then extras for added scenarios
ACCENT_COLORS = list(STAGE_COLORS.values()) + ['#f39c12', '#2ecc71', '#9b59b6']

HEATMAP_CMAP = mpl.colormaps['magma']


# ═══════════════════════════════════════════════════════════════════════
# FIGURE HELPERS
# ═══════════════════════════════════════════════════════════════════════

def _style_axes(ax):
    ax.set_facecolor(DARK_PANEL)
    ax.tick_params(colors=TEXT_COLOR)
    for text in (ax.xaxis.label, ax.yaxis.label, ax.title):
        text.set_color(TEXT_COLOR)
    for spine in ax.spines.values():
        spine.set_color(GRID_COLOR)
    ax.grid(True, color=GRID_COLOR, alpha=0.3, linewidth=0.5)


def dark_figure(nrows=1, ncols=1, figsize=None, **kwargs):
    """Figure and Axes with the dark theme applied.

    Returns (fig, ax) where ax is a single Axes or an ndarray, as from
    plt.subplots.
    """
    if figsize is None:
        figsize = (10, 6) if nrows * ncols == 1 else (6 * ncols, 5 * nrows)
    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, **kwargs)
    fig.set_facecolor(DARK_BG)
    for ax in np.atleast_1d(axes).flat:
        _style_axes(ax)
    return fig, axes


def dark_legend(ax, **kwargs):
    """Legend matching the dark theme."""
    return ax.legend(facecolor=DARK_PANEL, edgecolor=GRID_COLOR,
                     labelcolor=TEXT_COLOR, **kwargs)


def save_figure(fig, save_path, dpi=150):
    """Write a PNG on the figure's own background and close the figure."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                bbox_inches='tight')
    plt.close(fig)
