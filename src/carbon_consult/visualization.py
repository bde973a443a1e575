import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import os
from datetime import datetime
from typing import List, Optional, Tuple
from .constants import REPORTS_DIR
from .models import Category, EmissionResult
import logging

logger = logging.getLogger(__name__)

# ============================================================================
# VISUALIZER CLASS
# ============================================================================

class Visualizer:
    def __init__(self, output_dir: Optional[str] = None):
        """
        Initialize Visualizer.
        output_dir: where charts go (default: reports/charts/<timestamp>)
        """
        self.output_root = os.path.join(REPORTS_DIR, "charts")
        self._setup_style()
        self.session_dir = output_dir or self._create_session_dir()
        os.makedirs(self.session_dir, exist_ok=True)

    def _setup_style(self):
        """Configure matplotlib for clean report charts."""
        plt.rcParams.update(plt.rcParamsDefault)

        plt.rcParams.update({
            'font.family': 'sans-serif',
            'font.sans-serif': ['Arial', 'Helvetica', 'Calibri', 'DejaVu Sans'],
            'font.size': 12,
            'axes.titlesize': 16,
            'axes.titleweight': 'bold',
            'axes.labelsize': 13,
            'xtick.labelsize': 11,
            'ytick.labelsize': 11,
            'text.color': '#2C3E50',
            'axes.labelcolor': '#2C3E50',
            'xtick.color': '#2C3E50',
            'ytick.color': '#2C3E50'
        })

        plt.rcParams.update({
            'axes.spines.top': False,
            'axes.spines.right': False,
            'axes.spines.left': False,
            'axes.spines.bottom': True,
            'axes.linewidth': 1.2,
            'grid.color': '#E0E0E0',
            'grid.linestyle': ':',
            'grid.linewidth': 1.0,
            'axes.grid': True,
            'axes.grid.axis': 'y',
            'axes.axisbelow': True
        })

        self.colors = {
            'emissions': '#D32F2F',
            'credit': '#388E3C',
            'neutral': '#5D6D7E',
            'text': '#2C3E50',
        }

    def _create_session_dir(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return os.path.join(self.output_root, timestamp)

    def get_save_path(self, filename: str) -> str:
        return os.path.join(self.session_dir, filename)

    def _bar_color(self, value: float) -> str:
        return self.colors['credit'] if value < 0 else self.colors['neutral']

    def plot_category_totals(self, result: EmissionResult, label: str = "") -> str:
        """Bar chart of the five category totals (credits shown in green)."""
        names = [cat.label for cat in Category]
        values = [result.total(cat) for cat in Category]

        x = np.arange(len(names))
        fig, ax = plt.subplots(figsize=(10, 6), dpi=150)
        bars = ax.bar(x, values, color=[self._bar_color(v) for v in values], alpha=0.85, width=0.6)

        ax.set_ylabel("Emissions (kgCO2e)", fontweight='bold')
        title = "Emissions by lifecycle stage"
        if label:
            title += f"\n{label}"
        ax.set_title(title, pad=20, loc='left')
        ax.axhline(0, color=self.colors['text'], linewidth=0.8)
        ax.set_xticks(x)
        ax.set_xticklabels(names, rotation=20, ha='right')

        for bar, val in zip(bars, values):
            if val == 0:
                continue
            va = 'bottom' if val > 0 else 'top'
            ax.text(bar.get_x() + bar.get_width() / 2, val, f"{val:.2f}",
                    ha='center', va=va, fontsize=10, color=self.colors['text'])

        fig.text(0.99, 0.01, f"Total: {result.grand_total:.2f} kgCO2e", ha='right', fontsize=10)
        plt.tight_layout()
        path = self.get_save_path("category_totals.png")
        plt.savefig(path, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Chart saved: {path}")
        return path

    def plot_hotspots(self, result: EmissionResult, top_n: int = 10, label: str = "") -> Optional[str]:
        """Horizontal bars of the largest contributing line items."""
        entries: List[Tuple[str, float]] = []
        for cat in Category:
            for d in result.details.get(cat, []):
                entries.append((f"{d.name} ({cat.label})", d.co2e))
        if not entries:
            logger.warning("No positive emissions to plot.")
            return None

        entries.sort(key=lambda e: e[1], reverse=True)
        entries = entries[:top_n][::-1]

        fig, ax = plt.subplots(figsize=(10, max(3, 0.5 * len(entries) + 1.5)), dpi=150)
        ax.barh([e[0] for e in entries], [e[1] for e in entries], color=self.colors['emissions'], alpha=0.85)
        ax.grid(axis='x')
        ax.grid(axis='y', visible=False)
        ax.set_xlabel("Emissions (kgCO2e)", fontweight='bold')
        title = f"Top {len(entries)} emission hotspots"
        if label:
            title += f"\n{label}"
        ax.set_title(title, pad=20, loc='left')

        plt.tight_layout()
        path = self.get_save_path("hotspots.png")
        plt.savefig(path, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Chart saved: {path}")
        return path

    def generate_all(self, result: EmissionResult, label: str = "") -> List[str]:
        paths = [self.plot_category_totals(result, label)]
        hotspot = self.plot_hotspots(result, label=label)
        if hotspot:
            paths.append(hotspot)
        return paths
