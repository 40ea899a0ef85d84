import numpy as np
import matplotlib.pyplot as plt


def plot_lp_history(lp_history, integer_objective=None, show=False):
    """
    Plot the restricted master LP objective over the column generation iterations.

    Parameters:
    - lp_history (list): LP objective after every master solve
    - integer_objective (float): Optional objective of the final integer master, drawn as a line
    - show (bool): Call plt.show()

    Returns:
    - fig: Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=(10, 6))
    iterations = np.arange(len(lp_history))
    ax.plot(iterations, lp_history, marker='o', label='RMP LP objective')

    if lp_history:
        lower = np.ceil(min(lp_history) - 1e-6)
        ax.axhline(lower, linestyle=':', color='grey', alpha=0.6, label='Rounded-up LP bound')
    if integer_objective is not None:
        ax.axhline(integer_objective, linestyle='--', color='tab:red', alpha=0.6, label='Integer master')

    ax.set_xlabel('Iteration')
    ax.set_ylabel('Rods')
    ax.set_title('Column generation convergence')
    ax.grid(False)
    ax.legend(loc='upper right')

    plt.tight_layout()
    if show:
        plt.show()
    return fig


def plot_cutting_plan(patterns, rod_length, show=False):
    """
    Horizontal bar chart of a cutting plan: one bar per rod, one segment per piece.

    Parameters:
    - patterns (list): Patterns of the plan
    - rod_length (int): Rod length
    - show (bool): Call plt.show()

    Returns:
    - fig: Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=(10, max(2, 0.5 * len(patterns) + 1)))
    colors = plt.cm.tab20(np.linspace(0, 1, 20))

    for row, pattern in enumerate(patterns):
        start = 0
        for piece in pattern:
            ax.barh(row, piece.length, left=start, color=colors[piece.id % 20], edgecolor='black')
            ax.text(start + piece.length / 2, row, str(piece.id), ha='center', va='center', fontsize=8)
            start += piece.length
        if start < rod_length:
            ax.barh(row, rod_length - start, left=start, color='lightgrey', hatch='//', edgecolor='grey')

    ax.set_yticks(range(len(patterns)))
    ax.set_yticklabels([f'Rod {i + 1}' for i in range(len(patterns))])
    ax.set_xlim(0, rod_length)
    ax.set_xlabel('Length')
    ax.set_title(f'Cutting plan ({len(patterns)} rods)')
    ax.invert_yaxis()

    plt.tight_layout()
    if show:
        plt.show()
    return fig
