# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""VideOracle - decentralized verification market.

A requester posts a question with a reward. Verifiers submit candidate
answers ("proofs"), stakers back the proof they believe, and the
highest-staked proof is elected. The requester may dispute the election
during a grace period, in which case the other stakers vote on it. Once
every window has closed, participants claim their share.

Architecture:
  Request Registry -> Proof & Vote Ledger -> [Dispute Arbitrator] -> Settlement Engine

The core is synchronous and host-agnostic: value moves through a
``LedgerAdapter``, time comes from a ``Clock``. ``videoracle.server`` exposes
the market over HTTP.
"""

__version__ = "0.1.0"

from . import (
    core as core,
)
