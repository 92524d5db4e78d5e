"""
Commands - Implementations of the devpn CLI commands.

Each module corresponds to a top-level CLI command:
- deploy:  Deploy DEVPNToken, NodeRegistry, Reward and Vesting
- setup:   Wire Reward / Vesting into DEVPNToken
- vesting: Create a vesting schedule and release it (`devpn vest`)
- token:   DEVPN balance and transfer
- owner:   Check contract ownership
- wallet:  Create a recipient wallet
"""
