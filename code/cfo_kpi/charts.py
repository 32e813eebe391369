import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt


def plot_trend(trend, outpath, title):
    """Revenue vs costs per period, side by side."""
    ax = trend.set_index("Period")[["Revenue", "Costs"]].plot(kind="bar")
    ax.set_xlabel("Period")
    ax.set_ylabel("EUR")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
