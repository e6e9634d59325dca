"""RepuShield agents: platform crawlers and analysis sifters."""
