from __future__ import annotations

import io
from typing import List, Sequence

import matplotlib
matplotlib.use('Agg')  # headless backend, the viewer shows the result as an image
from matplotlib import pyplot as plt
from PIL import Image

from ..core.model import (
    LABEL_GRANULATION,
    LABEL_NECROSIS,
    LABEL_OTHER,
    LABEL_SLOUGH,
    TISSUE_COLORS,
    TissueSample,
)

SERIES = (
    ('granulation', LABEL_GRANULATION),
    ('slough', LABEL_SLOUGH),
    ('necrosis', LABEL_NECROSIS),
    ('other', LABEL_OTHER),
)


def generate_tissue_chart(samples: Sequence[TissueSample]) -> Image.Image:
    """Stacked horizontal bars: one per sample plus the average."""
    if not samples:
        raise ValueError("No tissue samples to chart")
    labels: List[str] = [f"M{idx}" for idx in range(1, len(samples) + 1)] + ["Media"]
    n = len(samples)
    fig, ax = plt.subplots(figsize=(6, 1.2 + 0.4 * len(labels)))
    left = [0.0] * len(labels)
    for attr, label in SERIES:
        # negative "other" (rounding drift) is drawn as zero width
        values = [max(0, getattr(s, attr)) for s in samples]
        values.append(sum(values) / n)
        ax.barh(labels, values, left=left, color=TISSUE_COLORS[label],
                edgecolor='white', label=label)
        left = [acc + v for acc, v in zip(left, values)]
    ax.set_xlim(0, 100)
    ax.set_xlabel('%')
    ax.invert_yaxis()
    ax.legend(loc='upper center', bbox_to_anchor=(0.5, -0.35), ncol=4, frameon=False, fontsize=8)
    ax.set_title('Composición tisular')
    buffer = io.BytesIO()
    fig.savefig(buffer, format='png', bbox_inches='tight')
    plt.close(fig)
    buffer.seek(0)
    img = Image.open(buffer)
    img.load()
    return img
