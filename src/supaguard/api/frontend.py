from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

router = APIRouter()


@router.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/ui")


@router.get("/ui", include_in_schema=False)
def serve_ui() -> HTMLResponse:
    """Serve the single-page dashboard."""
    return HTMLResponse(CONTENT)


# Keeping HTML inline to avoid extra static asset plumbing.
CONTENT = r"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>SupaGuard</title>
  <style>
    :root {
      --primary: #10b981;
      --danger: #ef4444;
      --text: #f1f5f9;
      --text-muted: #94a3b8;
      --bg-main: #030712;
      --bg-card: #111827;
      --border: #1f2937;
    }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font: 14px system-ui, sans-serif; color: var(--text); background: var(--bg-main); }
    .hidden { display: none !important; }
    .app-layout { display: flex; min-height: 100vh; }
    .sidebar { width: 300px; background: var(--bg-card); border-right: 1px solid var(--border); padding: 16px; overflow-y: auto; }
    .main-content { flex: 1; padding: 24px; overflow-y: auto; }
    .card { background: var(--bg-card); border: 1px solid var(--border); border-radius: 12px; padding: 20px; margin-bottom: 16px; }
    h1 { font-size: 22px; margin-bottom: 4px; }
    h2 { font-size: 11px; text-transform: uppercase; letter-spacing: .15em; color: var(--text-muted); margin: 12px 0 8px; }
    button { background: var(--primary); color: #fff; border: 0; border-radius: 8px; padding: 8px 16px; font-weight: 700; cursor: pointer; }
    button.secondary { background: transparent; border: 1px solid var(--border); color: var(--text-muted); }
    button.active { background: var(--primary); color: #fff; }
    button:disabled { opacity: .5; cursor: default; }
    input, textarea { width: 100%; background: #0b1220; color: var(--text); border: 1px solid var(--border); border-radius: 8px; padding: 10px; font-family: ui-monospace, monospace; }
    textarea { height: 160px; color: var(--primary); }
    .project { display: block; width: 100%; text-align: left; margin-bottom: 6px; background: transparent; border: 1px solid var(--border); color: var(--text); }
    .project.selected { border-color: var(--primary); color: var(--primary); }
    .project small { display: block; color: var(--text-muted); font-weight: 400; }
    .tabs { display: flex; gap: 6px; margin: 12px 0 20px; }
    .stat { display: flex; justify-content: space-between; border-bottom: 1px solid var(--border); padding: 6px 0; }
    .chip { display: inline-block; background: rgba(16,185,129,.08); color: var(--primary); border-radius: 6px; padding: 2px 8px; margin: 2px; font-size: 12px; }
    .error { color: var(--danger); margin: 8px 0; }
    .muted { color: var(--text-muted); }
    table.grid { width: 100%; border-collapse: collapse; font-size: 12px; }
    table.grid th, table.grid td { border-bottom: 1px solid var(--border); padding: 6px 8px; text-align: left; white-space: nowrap; max-width: 240px; overflow: hidden; text-overflow: ellipsis; }
    .progress { height: 6px; background: var(--border); border-radius: 3px; overflow: hidden; margin-top: 8px; }
    .progress > div { height: 100%; background: var(--primary); width: 0; }
    .login { max-width: 460px; margin: 10vh auto; }
    .login label { display: block; margin: 12px 0 4px; color: var(--text-muted); }
  </style>
</head>
<body>
  <div id="login" class="login card hidden">
    <h1>SupaGuard</h1>
    <p class="muted">Paste a personal access token (sbp_...) to browse your projects.</p>
    <label for="token">Access token</label>
    <input id="token" type="password" placeholder="sbp_...">
    <label for="proxy">Forwarding proxy (optional)</label>
    <input id="proxy" type="text" placeholder="https://proxy.example/">
    <div class="error" id="login-error"></div>
    <button id="login-btn" style="margin-top:12px">Connect</button>
  </div>

  <div id="app" class="app-layout hidden">
    <aside class="sidebar">
      <h2>Organizations</h2>
      <div id="orgs" class="muted"></div>
      <h2>Projects</h2>
      <div id="projects"></div>
      <button class="secondary" id="logout-btn" style="margin-top:16px">Sign out</button>
    </aside>
    <main class="main-content">
      <h1>Operations panel</h1>
      <p class="muted">PROJECT: <span id="project-name">waiting for selection</span></p>
      <div class="error" id="error"></div>
      <div class="tabs" id="tabs">
        <button class="secondary" data-view="dashboard">Overview</button>
        <button class="secondary" data-view="backup">Backup</button>
        <button class="secondary" data-view="explorer">Tables</button>
        <button class="secondary" data-view="sql">SQL</button>
      </div>

      <section id="view-empty" class="card muted">Select a project in the sidebar.</section>

      <section id="view-dashboard" class="hidden">
        <div class="card">
          <div class="stat"><span>Tables</span><strong id="stat-tables">0</strong></div>
          <div class="stat"><span>Rows</span><strong id="stat-rows">0</strong></div>
          <h2>Active tables</h2>
          <div id="chips" class="muted">Loading schema...</div>
        </div>
        <div class="card">
          <h2>Backup &amp; restore</h2>
          <p id="insight" class="muted">Waiting for data to analyze.</p>
        </div>
      </section>

      <section id="view-backup" class="hidden">
        <div class="card">
          <h2>SQL exports</h2>
          <button data-export="full">Download full backup (.sql)</button>
          <button data-export="data" class="secondary">Data only</button>
          <button data-export="structure" class="secondary">Structure only</button>
          <a href="/exports/inventory"><button class="secondary">Inventory (.xlsx)</button></a>
          <button id="cancel-btn" class="secondary hidden">Cancel</button>
          <p id="export-stage" class="muted" style="margin-top:8px"></p>
          <div class="progress"><div id="export-bar"></div></div>
          <div id="manifest" class="muted" style="margin-top:8px"></div>
        </div>
        <div class="card">
          <h2>Platform backups</h2>
          <table class="grid"><thead><tr><th>Created</th><th>Type</th><th>Status</th></tr></thead><tbody id="backups"></tbody></table>
        </div>
      </section>

      <section id="view-explorer" class="hidden">
        <div class="card">
          <table class="grid"><thead><tr><th>Schema</th><th>Table</th><th>Rows</th></tr></thead><tbody id="tables"></tbody></table>
        </div>
      </section>

      <section id="view-sql" class="hidden">
        <div class="card">
          <textarea id="sql">SELECT * FROM information_schema.tables WHERE table_schema = 'public';</textarea>
          <button id="run-btn" style="margin-top:12px">Run query</button>
          <button id="csv-btn" class="secondary" style="margin-top:12px">Download CSV</button>
          <div style="overflow-x:auto; margin-top:16px"><table class="grid" id="results"></table></div>
        </div>
      </section>
    </main>
  </div>

  <script>
    const $ = (id) => document.getElementById(id);
    let state = null;
    let pollTimer = null;

    function escapeHtml(value) {
      return String(value).replace(/[&<>"']/g, (c) => ({'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'}[c]));
    }

    async function api(url, options = {}) {
      const res = await fetch(url, {headers: {'Content-Type': 'application/json'}, ...options});
      if (!res.ok) {
        const body = await res.json().catch(() => ({}));
        throw new Error(body.detail || `${res.status} ${res.statusText}`);
      }
      return res.json();
    }

    function render(next) {
      state = next;
      $('login').classList.toggle('hidden', state.authenticated);
      $('app').classList.toggle('hidden', !state.authenticated);
      if (!state.authenticated) return;

      $('error').textContent = state.error || '';
      $('orgs').textContent = state.organizations.map((o) => o.name).join(', ');
      $('projects').innerHTML = state.projects.map((p) => `
        <button class="project ${state.selected_project && state.selected_project.id === p.id ? 'selected' : ''}" data-ref="${escapeHtml(p.id)}">
          ${escapeHtml(p.name)}<small>${escapeHtml(p.region)} &middot; ${escapeHtml(p.status)}</small>
        </button>`).join('');

      const project = state.selected_project;
      $('project-name').textContent = project ? project.name : 'waiting for selection';
      $('view-empty').classList.toggle('hidden', !!project);
      for (const view of ['dashboard', 'backup', 'explorer', 'sql']) {
        $(`view-${view}`).classList.toggle('hidden', !project || state.active_view !== view);
      }
      document.querySelectorAll('#tabs button').forEach((b) => b.classList.toggle('active', b.dataset.view === state.active_view));
      if (!project) return;

      $('stat-tables').textContent = state.tables.length;
      $('stat-rows').textContent = state.total_rows.toLocaleString();
      $('chips').innerHTML = state.tables.length
        ? state.tables.map((t) => `<span class="chip">${escapeHtml(t.name)}</span>`).join('')
        : (state.loading ? 'Loading schema...' : 'No tables found.');
      $('insight').textContent = state.analyzing ? 'Gemini is analyzing your database...' : (state.insight || 'Waiting for data to analyze.');
      $('tables').innerHTML = state.tables.map((t) => `
        <tr><td>${escapeHtml(t.schema)}</td><td>${escapeHtml(t.name)}</td><td>${t.rowCount == null ? '...' : t.rowCount.toLocaleString()}</td></tr>`).join('');
      $('backups').innerHTML = state.backups.length
        ? state.backups.map((b) => `<tr><td>${escapeHtml(b.inserted_at)}</td><td>${b.is_physical ? 'physical' : 'logical'}</td><td>${escapeHtml(b.status)}</td></tr>`).join('')
        : '<tr><td colspan="3" class="muted">No platform backups available.</td></tr>';

      if (state.analyzing) setTimeout(refreshState, 2000);
    }

    async function refreshState() {
      render(await api('/session'));
    }

    async function pollExport() {
      const status = await api('/exports/progress');
      $('export-stage').textContent = status.active ? `${status.percent}% - ${status.stage}` : '';
      $('export-bar').style.width = `${status.active ? status.percent : 0}%`;
      $('cancel-btn').classList.toggle('hidden', !status.active);
      document.querySelectorAll('[data-export]').forEach((b) => { b.disabled = status.active; });
      if (!status.active) {
        clearInterval(pollTimer);
        pollTimer = null;
        $('manifest').innerHTML = status.last_manifest.map((r) =>
          `<div>${escapeHtml(r.table)}: ${r.status === 'succeeded' ? `${r.row_count} rows` : `skipped (${escapeHtml(r.reason)})`}</div>`).join('');
      }
    }

    function startExport(kind) {
      // Navigating to the attachment keeps the page alive while the browser streams the file.
      const frame = document.createElement('iframe');
      frame.style.display = 'none';
      frame.src = `/exports/${kind}`;
      document.body.appendChild(frame);
      $('manifest').textContent = '';
      if (!pollTimer) pollTimer = setInterval(() => pollExport().catch(console.error), 700);
    }

    async function runQuery(format) {
      const query = $('sql').value;
      if (format === 'csv') {
        const res = await fetch('/sql?format=csv', {method: 'POST', headers: {'Content-Type': 'application/json'}, body: JSON.stringify({query})});
        if (!res.ok) { alert((await res.json()).detail); return; }
        const url = URL.createObjectURL(await res.blob());
        const link = document.createElement('a');
        link.href = url;
        link.download = 'query_results.csv';
        link.click();
        URL.revokeObjectURL(url);
        return;
      }
      try {
        const result = await api('/sql', {method: 'POST', body: JSON.stringify({query})});
        $('results').innerHTML = `<thead><tr>${result.columns.map((c) => `<th>${escapeHtml(c)}</th>`).join('')}</tr></thead>
          <tbody>${result.rows.map((row) => `<tr>${result.columns.map((c) => `<td>${escapeHtml(row[c] === undefined ? '' : JSON.stringify(row[c]))}</td>`).join('')}</tr>`).join('')}</tbody>`;
      } catch (err) {
        alert(err.message);
      }
    }

    $('login-btn').addEventListener('click', async () => {
      $('login-error').textContent = '';
      try {
        const next = await api('/session', {method: 'POST', body: JSON.stringify({token: $('token').value, proxy_url: $('proxy').value})});
        render(next);
      } catch (err) {
        $('login-error').textContent = err.message;
      }
    });
    $('logout-btn').addEventListener('click', async () => render(await api('/session', {method: 'DELETE'})));
    $('projects').addEventListener('click', async (e) => {
      const button = e.target.closest('[data-ref]');
      if (!button) return;
      render({...state, selected_project: state.projects.find((p) => p.id === button.dataset.ref), tables: [], backups: [], loading: true});
      try {
        render(await api(`/projects/${encodeURIComponent(button.dataset.ref)}/select`, {method: 'POST'}));
      } catch (err) {
        $('error').textContent = err.message;
      }
    });
    $('tabs').addEventListener('click', async (e) => {
      const view = e.target.dataset.view;
      if (view) render(await api('/session/view', {method: 'PUT', body: JSON.stringify({view})}));
    });
    document.querySelectorAll('[data-export]').forEach((b) => b.addEventListener('click', () => startExport(b.dataset.export)));
    $('cancel-btn').addEventListener('click', () => api('/exports/cancel', {method: 'POST'}));
    $('run-btn').addEventListener('click', () => runQuery('json'));
    $('csv-btn').addEventListener('click', () => runQuery('csv'));

    refreshState().catch((err) => { $('login-error').textContent = err.message; render({authenticated: false}); });
  </script>
</body>
</html>"""
