"""
hotspot_core — HotSpot Dashboard Controller v1.0
================================================
Architecture: one main loop (Tk root.after), blocking work on worker threads.

  constants.py    → Version, cadences, timeouts, demo accounts, storage slots
  config.py       → Paths, logging, config load/save, Settings
  errors.py       → Auth / storage / API error taxonomy
  storage.py      → Persisted key-value slots (JSON file or in-memory)
  models.py       → Account and Session records
  credentials.py  → CredentialStore (account collection, demo seeding)
  auth.py         → AuthSessionManager (login, register, logout, expiry)
  http_client.py  → HTTP session with pooling + CA bundle
  api.py          → Remote HotSpot API calls
  state.py        → View, ConnectionStatus, SyncResult (shared read state)
  dispatch.py     → Dispatcher (worker threads → queue → loop)
  network.py      → ConnectivityMonitor (health probe, tri-state status)
  adapter.py      → ResultAdapter (view models + synthetic fallback)
  scheduler.py    → DataSyncScheduler (active-view poll timer)
  app.py          → DashboardController (wires everything onto the loop)
"""
