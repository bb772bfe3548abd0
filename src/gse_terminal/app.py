"""GSE Research Terminal — single-page research dashboard.

One search box, one result at a time:
  - AI-generated narrative summary
  - news sentiment badge
  - Chart.js bar chart of headline income-statement lines
  - financial deep-dive tables with CSV export
  - cited web sources

Run:  python -m gse_terminal.app
Open: http://localhost:{PORT}  (default 8877)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from gse_terminal.config import get_config
from gse_terminal.errors import SessionBusyError, ValidationError
from gse_terminal.export import EXPORT_FILENAME, EXPORT_MEDIA_TYPE, tables_to_csv
from gse_terminal.research import ResearchService, get_research_service
from gse_terminal.session import SearchSession
from gse_terminal.tables import build_financial_tables

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start without the provider credential
    config = get_config()
    config.require_api_key()
    log.info("GSE Research Terminal ready (model=%s)", config.anthropic_model)
    yield


app = FastAPI(title="GSE Research Terminal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_session = SearchSession()


def get_session() -> SearchSession:
    return _session


def get_service() -> ResearchService:
    return get_research_service()


class SearchRequest(BaseModel):
    query: str = ""


# ═══════════════════════════════════════════════════════════════════════════
#  API
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "anthropic": "configured" if get_config().anthropic_api_key else "missing",
    }


@app.get("/api/state")
async def current_state(session: SearchSession = Depends(get_session)) -> dict:
    """Current session snapshot: state, error and the view model to draw."""
    return session.snapshot()


@app.post("/api/search")
async def search(
    req: SearchRequest,
    session: SearchSession = Depends(get_session),
    service: ResearchService = Depends(get_service),
) -> dict:
    """Run one research request and return the new session snapshot.

    400 for an empty query, 409 while another search is still running.
    Provider failures are not HTTP errors: the snapshot comes back in the
    ``failure`` state with a generic message.
    """
    try:
        query = session.begin(req.query)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    try:
        result = await run_in_threadpool(service.search, query)
    except Exception as exc:
        session.fail(exc)
    else:
        session.succeed(result)
    finally:
        if session.is_loading:
            # Cancelled mid-flight (client went away)
            session.fail(RuntimeError("search cancelled"))

    return session.snapshot()


@app.get("/api/export")
async def export_tables(session: SearchSession = Depends(get_session)) -> Response:
    """Download the current result's tables as CSV."""
    result = session.result
    tables = build_financial_tables(result.financial_data) if result and result.financial_data else None
    if tables is None or not tables.has_data:
        raise HTTPException(status_code=404, detail="No financial data to export.")
    return Response(
        content=tables_to_csv(tables),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@app.get("/")
async def index():
    """Serve the terminal page."""
    return HTMLResponse(HTML)


# ═══════════════════════════════════════════════════════════════════════════
#  Frontend — dark research terminal
#  Draws the view model from /api/state and /api/search; no logic of its own
#  beyond disabling the form while a search is in flight.
# ═══════════════════════════════════════════════════════════════════════════

HTML = r"""<!DOCTYPE html>
<html lang="en"><head>
<meta charset="utf-8"/><meta name="viewport" content="width=device-width,initial-scale=1"/>
<title>GSE Financial Research Terminal</title>
<link rel="preconnect" href="https://fonts.googleapis.com"/>
<link rel="preconnect" href="https://fonts.gstatic.com" crossorigin/>
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700;800&family=JetBrains+Mono:wght@400;500;600&display=swap" rel="stylesheet"/>
<script src="https://cdn.jsdelivr.net/npm/chart.js@4.4.7/dist/chart.umd.min.js"></script>
<style>
*{box-sizing:border-box;margin:0;padding:0;scrollbar-width:thin;scrollbar-color:rgba(100,120,140,.18) transparent}
:root{
  --bg0:#0c0f14;--bg1:#13161d;--bg2:#1a1e27;--bg3:#232830;
  --bdr:rgba(255,255,255,.06);--bdr2:rgba(255,255,255,.09);--bdr3:rgba(255,255,255,.16);
  --t1:#f0f2f5;--t2:#a0a8b8;--t3:#6b7585;
  --gold:#d4af37;--gold2:#b8962e;--red:#ff5266;
}
body{background:var(--bg0);color:var(--t1);font-family:Inter,system-ui,sans-serif;font-size:14px;line-height:1.5}
.wrap{max-width:960px;margin:0 auto;padding:32px 16px}
header{text-align:center;margin-bottom:28px;padding-bottom:22px;border-bottom:2px solid var(--bdr2)}
header h1{font-size:30px;font-weight:800;letter-spacing:-.02em}
header p{color:var(--t2);margin-top:6px}
.bar{position:sticky;top:12px;z-index:10;display:flex;gap:8px;padding:6px;border-radius:10px;
  background:rgba(12,15,20,.85);backdrop-filter:blur(6px)}
.bar input{flex:1;background:var(--bg2);border:1px solid var(--bdr3);border-radius:8px;padding:12px 16px;
  color:var(--t1);font:inherit;outline:none}
.bar input:focus{border-color:var(--gold)}
.bar input:disabled{opacity:.6}
.bar button{width:112px;background:var(--gold);color:#13161d;font-weight:700;border:0;border-radius:8px;cursor:pointer}
.bar button:hover{background:var(--gold2)}
.bar button:disabled{background:var(--bg3);cursor:default}
.err{display:none;margin-top:20px;padding:12px 16px;border-radius:8px;text-align:center;
  background:rgba(127,29,29,.5);border:1px solid #b91c1c;color:#fca5a5}
#out{margin-top:28px;display:flex;flex-direction:column;gap:28px}
.card{background:var(--bg1);border:1px solid var(--bdr2);border-radius:10px;padding:22px}
.card h2{font-size:22px;color:var(--gold);margin-bottom:14px}
.card h3{font-size:18px;color:var(--gold);margin-bottom:12px}
.card h4{font-size:15px;margin-bottom:10px}
.summary{white-space:pre-wrap}
.grid{display:grid;grid-template-columns:1fr 2fr;gap:28px}
.grid.one{grid-template-columns:1fr}
.welcome{text-align:center;border:2px dashed var(--bdr3)}
.welcome ul{list-style:none;text-align:left;max-width:420px;margin:18px auto 0;color:var(--t2)}
.welcome li{cursor:pointer;padding:4px 0}.welcome li:hover{color:var(--t1)}
.welcome li::before{content:'\203A  ';color:var(--gold)}
.loading{text-align:center;color:var(--t2)}
.spin{display:inline-block;width:22px;height:22px;border:3px solid var(--bdr3);border-top-color:var(--gold);
  border-radius:50%;animation:sp 1s linear infinite}
.loading .spin{width:36px;height:36px;margin-bottom:12px}
@keyframes sp{to{transform:rotate(360deg)}}
.badge{display:flex;align-items:center;gap:12px;margin-bottom:14px}
.badge .ic{width:40px;height:40px;border-radius:50%;display:flex;align-items:center;justify-content:center;font-size:20px}
.badge span{font-size:24px;font-weight:600}
.muted{color:var(--t2);font-size:13px}
.chart-box{position:relative;height:320px}
.deep-hdr{display:flex;justify-content:space-between;align-items:center;margin-bottom:18px}
.btn{padding:8px 12px;font-size:13px;color:var(--t2);background:var(--bg3);border:1px solid var(--bdr3);
  border-radius:6px;text-decoration:none}
.btn:hover{color:var(--t1)}
.blocks{display:grid;grid-template-columns:1fr 1fr;gap:24px;margin-bottom:24px}
.block{padding:14px;background:rgba(12,15,20,.4);border:1px solid var(--bdr2);border-radius:8px;color:var(--t2);font-size:13px}
.tbl{margin-bottom:24px;overflow-x:auto;border:1px solid var(--bdr2);border-radius:8px}
table{width:100%;border-collapse:collapse;font-size:13px}
th{padding:10px 14px;text-align:right;font-size:11px;text-transform:uppercase;letter-spacing:.05em;color:var(--t2);
  background:rgba(255,255,255,.03);border-bottom:2px solid var(--bdr2)}
td{padding:10px 14px;text-align:right;white-space:nowrap;color:var(--t2);font-family:'JetBrains Mono',monospace;
  border-top:1px solid var(--bdr)}
th:first-child,td:first-child{text-align:left}
td:first-child{font-family:Inter,sans-serif;font-weight:500;color:var(--t1)}
tr:nth-child(even) td{background:rgba(12,15,20,.3)}
.src{display:grid;grid-template-columns:1fr 1fr;gap:14px;margin-top:14px}
.src a{display:block;padding:14px;background:var(--bg0);border:1px solid var(--bdr2);border-radius:6px;text-decoration:none}
.src a:hover{border-color:var(--gold)}
.src b{display:block;color:var(--t1);overflow:hidden;text-overflow:ellipsis;white-space:nowrap}
.src i{display:block;font-style:normal;color:var(--t2);font-size:13px;overflow:hidden;text-overflow:ellipsis;white-space:nowrap}
footer{text-align:center;margin-top:48px;padding-top:16px;border-top:1px solid var(--bdr2);color:var(--t2);font-size:13px}
@media(max-width:760px){.grid,.blocks,.src{grid-template-columns:1fr}}
</style></head>
<body><div class="wrap">
<header>
  <h1>GSE Financial Research Terminal</h1>
  <p>AI-Powered Insights on Ghana Stock Exchange Listed Companies</p>
</header>
<main>
  <form class="bar" id="f">
    <input id="q" type="text" autocomplete="off"
      placeholder="e.g., 'Financials for MTN Ghana' or 'GCB Bank stock trend'"/>
    <button id="go" type="submit">Search</button>
  </form>
  <div class="err" id="err"></div>
  <div id="out"></div>
</main>
<footer>&copy; <span id="yr"></span> Financial Research. Data provided for informational purposes only.</footer>
</div>
<script>
const F=document.getElementById('f'),Q=document.getElementById('q'),BT=document.getElementById('go');
const OUT=document.getElementById('out'),ERR=document.getElementById('err');
const ICONS={'trending-up':'↗','trending-down':'↘','minus':'−'};
const GENERIC='Failed to retrieve data. The API might be unavailable or the request failed. Please try again later.';
let _chart=null;
document.getElementById('yr').textContent=new Date().getFullYear();

function esc(s){if(s==null)return'';const d=document.createElement('div');d.textContent=String(s);return d.innerHTML}
function showErr(m){if(m){ERR.textContent=m;ERR.style.display='block'}else{ERR.style.display='none'}}
function setBusy(b){Q.disabled=b;BT.disabled=b;BT.innerHTML=b?'<span class="spin"></span>':'Search'}

/* ═══ Submit ═══ */
F.addEventListener('submit',async e=>{
  e.preventDefault();
  if(BT.disabled)return;
  const m=Q.value;
  if(!m.trim()){showErr('Please enter a valid company or query.');return}
  showErr(null);setBusy(true);draw({view:'loading',message:'Fetching and analyzing real-time data...'});
  try{
    const r=await fetch('/api/search',{method:'POST',headers:{'Content-Type':'application/json'},
      body:JSON.stringify({query:m})});
    const j=await r.json();
    if(!r.ok){showErr(j.detail||GENERIC);draw(await (await fetch('/api/state')).json())}
    else{showErr(j.error);draw(j)}
  }catch(err){console.error(err);showErr(GENERIC);draw({view:'empty'})}
  setBusy(false);Q.focus();
});

/* ═══ Views ═══ */
function draw(s){
  if(_chart){_chart.destroy();_chart=null}
  if(s.view==='welcome'){OUT.innerHTML=welcome(s.examples||[]);
    OUT.querySelectorAll('.welcome li').forEach(li=>li.onclick=()=>{Q.value=li.dataset.q;Q.focus()});return}
  if(s.view==='loading'){OUT.innerHTML='<div class="card loading"><div class="spin"></div><p>'+esc(s.message)+'</p></div>';return}
  if(s.view==='result'){rRes(s.result);return}
  OUT.innerHTML='';
}
function welcome(ex){
  let h='<div class="card welcome"><h2 style="color:var(--t1)">Welcome to the Research Terminal</h2>';
  h+='<p class="muted">Your AI-powered gateway to financial insights on the Ghana Stock Exchange.</p>';
  h+='<p style="margin-top:22px;font-weight:600">Start by asking for:</p><ul>';
  for(const q of ex)h+='<li data-q="'+esc(q)+'">"'+esc(q)+'"</li>';
  return h+'</ul></div>';
}
function rRes(r){
  let h='';
  if(r.summary)h+='<div class="card"><h2>AI-Generated Summary</h2><div class="summary">'+esc(r.summary)+'</div></div>';
  if(r.sentiment||r.chart){
    h+='<div class="grid'+((r.sentiment&&r.chart)?'':' one')+'">';
    if(r.sentiment)h+=rSent(r.sentiment);
    if(r.chart)h+='<div class="card">'+(r.chart.data?'<div class="chart-box"><canvas id="c-kpi"></canvas></div>'
      :'<p class="muted" style="text-align:center">'+esc(r.chart.message)+'</p>')+'</div>';
    h+='</div>';
  }
  if(r.financials)h+=rFin(r.financials);
  if(r.sources&&r.sources.length){
    h+='<div class="card"><h3>Data Sources</h3><p class="muted">'+esc(r.sources_caption)+'</p><div class="src">';
    for(const s of r.sources)h+='<a href="'+esc(s.uri)+'" target="_blank" rel="noopener noreferrer"><b>'
      +esc(s.title)+'</b><i>'+esc(s.host)+'</i></a>';
    h+='</div></div>';
  }
  OUT.innerHTML=h;
  if(r.chart&&r.chart.data)rChart(r.chart.data);
}
function rSent(s){
  return '<div class="card"><h3>News Sentiment</h3><div class="badge"><div class="ic" style="color:'+s.color
    +';background:'+s.background+'">'+(ICONS[s.icon]||'')+'</div><span style="color:'+s.color+'">'+esc(s.label)
    +'</span></div><p class="muted">'+esc(s.summary)+'</p></div>';
}
function rFin(f){
  let h='<div class="card"><div class="deep-hdr"><h3 style="margin:0">Financial Deep-Dive</h3>';
  if(f.exportable)h+='<a class="btn" href="/api/export" download="financial_data_export.csv" aria-label="Export financial data as CSV">⇩ Export as CSV</a>';
  h+='</div>';
  if(f.analysis&&f.analysis.length){
    h+='<div class="blocks">';
    for(const b of f.analysis)h+='<div><h4>'+esc(b.title)+'</h4><div class="block">'+esc(b.content)+'</div></div>';
    h+='</div>';
  }
  for(const t of f.tables){
    h+='<h4>'+esc(t.title)+'</h4><div class="tbl"><table><thead><tr>';
    for(const c of t.headers)h+='<th>'+esc(c)+'</th>';
    h+='</tr></thead><tbody>';
    for(const row of t.rows){h+='<tr>';for(const c of row)h+='<td>'+esc(c)+'</td>';h+='</tr>'}
    h+='</tbody></table></div>';
  }
  return h+'</div>';
}
function rChart(d){
  const el=document.getElementById('c-kpi');if(!el)return;
  _chart=new Chart(el,{type:'bar',data:{labels:d.labels,datasets:d.datasets},
    options:{responsive:true,maintainAspectRatio:false,
      plugins:{legend:{position:'top',labels:{color:'#a0aec0'}},
        title:{display:true,text:d.title,color:'#f7fafc',font:{size:16}},
        tooltip:{callbacks:{label:c=>(c.dataset.label?c.dataset.label+': ':'')
          +(c.parsed.y!==null?new Intl.NumberFormat('en-US',{style:'decimal'}).format(c.parsed.y):'')}}},
      scales:{x:{ticks:{color:'#a0aec0'},grid:{display:false}},
        y:{ticks:{color:'#a0aec0',callback:v=>Math.abs(v)>=1e6?(v/1e6)+'M':Math.abs(v)>=1e3?(v/1e3)+'K':v},
          grid:{color:'rgba(74,85,104,.4)'}}}}});
}

fetch('/api/state').then(r=>r.json()).then(s=>{showErr(s.error);draw(s)})
  .catch(()=>draw({view:'welcome',examples:[]}));
</script>
</body></html>
"""

if __name__ == "__main__":
    import uvicorn

    config = get_config()
    print(f"\n  GSE Research Terminal → http://localhost:{config.port}\n")
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level=config.log_level)
