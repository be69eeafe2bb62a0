"""
Scotty - Client Core

The state engine behind the Scotty personal-finance companion:
a virtual pet whose mood follows the user's spending.

DESIGN PRINCIPLES:
1. Local state is usable immediately, before any network call
2. The backend only ever upgrades local state, it is never required
3. One slow or broken resource never blocks the others
4. Every fallback is logged, none is surfaced as an error
5. Derived numbers are pure functions of their inputs
"""

__version__ = "1.0.0"
__author__ = "Scotty Team"
