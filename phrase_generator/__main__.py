"""Entry point wrapper for ``python -m phrase_generator``.

Execution is forwarded to :func:`phrase_generator.main` so ``python -m`` and
the installed ``phrase-generator`` console script behave identically.

Example
-------
::

    python -m phrase_generator --bars 4 --timesig 3/4 --root G \
        --scale pentatonic --shortest-note 1/8
"""

from . import main

if __name__ == "__main__":
    main()
