from pathlib import Path

from sprat import InputBuildSettings


# Optional, and can be overridden with CLI arguments.
SETTINGS = InputBuildSettings(
    source_dir=Path(__file__).parent / 'newsletter',
    output_dir=Path('output/newsletter'),
    preserve=['images'],
    template_globals={
        'company': 'Sprat & Sons',
        'recipient': 'there',
    },
)
