"""stagepop visualization library.

Modules:
  - style: Dark theme colours and figure helpers
  - plots: Projection, stage composition, survival sweeps, sensitivity
           heatmaps and scenario comparison
"""

from stagepop.viz.style import (  # noqa: F401
    ACCENT_COLORS,
    ENTRY_COLORS,
    STAGE_COLORS,
    TEXT_COLOR,
    dark_figure,
    save_figure,
)

from stagepop.viz.plots import (  # noqa: F401
    plot_projection,
    plot_scenario_comparison,
    plot_sensitivity_heatmaps,
    plot_stage_composition,
    plot_sweep_curves,
)
