"""auth/ -- Credential and session-token lifecycle for authledger.

Modules, leaves first:
  models.py / errors.py   -- dataclasses and the exception taxonomy
  codec.py                -- JWT sign / verify (python-jose)
  passwords.py            -- bcrypt hash / compare
  store.py / ledger.py    -- SQLAlchemy Core repositories (users, issued tokens)
  mailer.py               -- SMTP delivery of reset / verification links
  issuer.py               -- codec + ledger -> access/refresh pairs, single-purpose tokens
  authenticator.py        -- login, logout, refresh rotation, reset, verification

Layer rule: auth/ may import from core/ (clock) but not from main.py.
Configuration is read by the entry point and passed into constructors.
"""
