"""
Internal utilities for pretty printing build output.
"""
import rich.console


_rich_consoles = {
    'stdout': rich.console.Console(highlight=False),
    'stderr': rich.console.Console(stderr=True, highlight=False),
}


def print_with_style(*args, sep=' ', end='\n', file: str = 'stdout', style=None):
    """
    Enhanced print() function using rich console styles.
    """
    _rich_consoles[file].print(*args, sep=sep, end=end, style=style, markup=False, soft_wrap=True)


def print_error(*args):
    print_with_style(*args, file='stderr', style='red')


def print_warning(*args):
    print_with_style(*args, style='yellow')


def format_size(size: int) -> str:
    """
    Format a byte count in kilobytes with two decimals, e.g. `1.25 KB`.
    """
    return f'{size / 1024:.2f} KB'
