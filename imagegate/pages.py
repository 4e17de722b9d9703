"""Server-rendered HTML pages. The pages talk to the JSON API from the browser."""

from __future__ import annotations

import html
import json

BASE_CSS = """
  :root{--bg:#fafafa;--fg:#111;--muted:#666;--card:#fff;--br:12px}
  *{box-sizing:border-box}
  button, input, select, textarea { font: inherit; }
  .btn{
    display:inline-flex; align-items:center; justify-content:center;
    height:32px; padding:0 12px;
    border:1px solid #ddd; border-radius:10px;
    background:#fff; color:inherit; text-decoration:none;
    font-size:12px; line-height:1; cursor:pointer; vertical-align:middle;
    -webkit-appearance:none; appearance:none;
  }
  .btn:focus{outline:2px solid #cfe8ff; outline-offset:2px}
  .btn[disabled]{opacity:.5;cursor:not-allowed}
  .danger{border-color:#f3c2c2;color:#b00020}
  .success{background:#e8f5e9;border-color:#c8e6c9}
  body{font-family:system-ui;margin:0;background:var(--bg);color:var(--fg)}
  header{padding:10px 20px;border-bottom:1px solid #eee;background:#fff;position:sticky;top:0;display:flex;gap:12px;align-items:center;justify-content:space-between}
  header nav{display:flex;gap:6px}
  h1{font-size:18px;margin:0}
  main{max-width:1100px;margin:0 auto;padding:20px}
  .muted{color:var(--muted);font-size:14px}
  .toolbar{display:flex;gap:8px;flex-wrap:wrap;align-items:center;margin:12px 0}
  .crumbs a{color:inherit;text-decoration:none;margin-right:4px}
  .grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(180px,1fr));gap:14px;margin-top:14px}
  .card{background:var(--card);border:1px solid #eee;border-radius:var(--br);overflow:hidden;position:relative}
  .card.selected{outline:3px solid #3b82f6}
  .thumb{aspect-ratio:1/1;display:block;width:100%;height:auto;object-fit:cover;background:#eee;cursor:zoom-in}
  .tile{aspect-ratio:1/1;display:flex;align-items:center;justify-content:center;font-size:42px;background:#f3f3f3;cursor:pointer}
  .caption{padding:6px 10px;font-size:12px;color:#333;white-space:nowrap;overflow:hidden;text-overflow:ellipsis}
  .pick{position:absolute;top:8px;left:8px}
  .pager{display:flex;gap:8px;align-items:center;margin-top:16px}
  .pager .info{font-size:12px;color:#555}
  .uploader{background:var(--card);border:2px dashed #ddd;border-radius:var(--br);padding:18px;min-height:140px;display:flex;flex-direction:column;justify-content:center;align-items:center}
  .uploader.drag{border-color:#aaa;background:#f7f7f7}
  .uploader input[type=file]{display:none}
  .results{margin-top:14px;display:flex;flex-direction:column;gap:8px}
  .results code{font-size:12px;word-break:break-all}
  .preview{position:fixed;inset:0;background:rgba(0,0,0,.85);display:none;align-items:center;justify-content:center}
  .preview img{max-width:92vw;max-height:92vh}
  table{border-collapse:collapse;width:100%;font-size:13px}
  td,th{border-bottom:1px solid #eee;padding:6px;text-align:left}
"""

COMMON_JS = """
function formatFileSize(bytes){
  if(!bytes)return '0 B';const u=['B','KB','MB','GB'];let i=0;let n=bytes;
  while(n>=1024&&i<u.length-1){n/=1024;i++;}return n.toFixed(i?1:0)+' '+u[i];
}
function el(tag,cls,text){const e=document.createElement(tag);if(cls)e.className=cls;if(text!==undefined)e.textContent=text;return e;}
function renderCrumbs(target,path,go){
  target.innerHTML='';const root=el('a',null,'root');root.href='#';root.onclick=e=>{e.preventDefault();go('');};target.append(root);
  let acc='';for(const part of path.split('/').filter(Boolean)){acc+=part+'/';const p=acc;
    target.append(document.createTextNode(' / '));const a=el('a',null,part);a.href='#';a.onclick=e=>{e.preventDefault();go(p);};target.append(a);}
}
function renderPager(info,prev,next,pagination){
  const p=pagination.currentPage,t=pagination.totalPages;
  info.textContent=t?`Page ${p}/${t} - ${pagination.totalFiles} file(s)`:'No files';
  prev.disabled=p<=1;next.disabled=!t||p>=t;
}
const preview=document.getElementById('preview');
function openPreview(url){preview.querySelector('img').src=url;preview.style.display='flex';}
preview.onclick=()=>{preview.style.display='none';};
"""

GALLERY_JS = """
const grid=document.getElementById('grid');
const crumbs=document.getElementById('crumbs');
const info=document.getElementById('pager-info');
const prev=document.getElementById('prev');
const next=document.getElementById('next');
const selected=new Set();
const params=new URLSearchParams(location.search);
let prefix=params.get('prefix')||'';
let page=parseInt(params.get('page')||'1',10);

async function api(url,options){
  const r=await fetch(url,options);const data=await r.json();
  if(!r.ok||!data.success)throw new Error((data.error&&data.error.message)||'Request failed');
  return data;
}
function go(p){prefix=p;page=1;selected.clear();load();}
async function load(){
  history.replaceState(null,'',`?prefix=${encodeURIComponent(prefix)}&page=${page}`);
  const data=await api(`/api/list?prefix=${encodeURIComponent(prefix)}&page=${page}&pageSize=${PAGE_SIZE}`);
  renderCrumbs(crumbs,prefix,go);grid.innerHTML='';
  for(const d of data.directories){
    const card=el('div','card');const tile=el('div','tile','\\u{1F4C1}');tile.onclick=()=>go(d.path);
    card.append(tile,el('div','caption',d.name));grid.append(card);
  }
  for(const f of data.files){
    const card=el('div','card');
    if(f.placeholder){card.append(el('div','tile','\\u{1F4C2}'),el('div','caption','empty folder'));grid.append(card);continue;}
    const img=el('img','thumb');img.loading='lazy';img.src=f.url;img.alt=f.name;img.onclick=()=>openPreview(f.url);
    const pick=el('input','pick');pick.type='checkbox';pick.checked=selected.has(f.key);
    pick.onchange=()=>{pick.checked?selected.add(f.key):selected.delete(f.key);card.classList.toggle('selected',pick.checked);};
    const cap=el('div','caption',`${f.name} - ${formatFileSize(f.size)}`);cap.title=f.url;
    cap.onclick=async()=>{await navigator.clipboard.writeText(f.url);cap.classList.add('success');setTimeout(()=>cap.classList.remove('success'),1000);};
    card.append(pick,img,cap);grid.append(card);
  }
  renderPager(info,prev,next,data.pagination);
}
prev.onclick=()=>{page--;load();};
next.onclick=()=>{page++;load();};
document.getElementById('up').onclick=()=>{
  const parts=prefix.split('/').filter(Boolean);parts.pop();go(parts.length?parts.join('/')+'/':'');
};
document.getElementById('delete').onclick=async()=>{
  if(!selected.size||!confirm(`Delete ${selected.size} file(s)?`))return;
  await api('/api/delete',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify({keys:[...selected]})});
  selected.clear();load();
};
document.getElementById('mkdir').onclick=async()=>{
  const name=prompt('Folder name');if(!name)return;
  await api('/api/create-folder',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify({path:prefix+name})});
  load();
};
document.getElementById('share').onclick=async()=>{
  const data=await api('/api/share/create',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify({path:prefix})});
  prompt('Share link',data.url);loadShares();
};
async function loadShares(){
  const body=document.getElementById('shares');body.innerHTML='';
  const data=await api('/api/share/list');
  for(const s of data.shares){
    const tr=el('tr');const a=el('a',null,s.url);a.href=s.url;a.target='_blank';
    const td=el('td');td.append(a);const rm=el('button','btn danger','Revoke');
    rm.onclick=async()=>{await api('/api/share/delete',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify({shareId:s.shareId})});loadShares();};
    const act=el('td');act.append(rm);tr.append(el('td',null,s.path||'/'),td,act);body.append(tr);
  }
}
load().catch(e=>alert(e.message));loadShares();
"""

UPLOAD_JS = """
const drop=document.getElementById('drop');
const fileInput=document.getElementById('file');
const pathInput=document.getElementById('path');
const results=document.getElementById('results');
const MAX_BYTES=MAX_MB*1024*1024;

async function uploadFile(file){
  if(file.size>MAX_BYTES){return {ok:false,message:`${file.name}: larger than ${MAX_MB} MB`};}
  const fd=new FormData();fd.append('file',file);if(pathInput.value)fd.append('path',pathInput.value);
  const r=await fetch('/api/upload',{method:'POST',body:fd});const data=await r.json();
  return data.success?{ok:true,...data}:{ok:false,message:`${file.name}: ${data.error.message}`};
}
async function handleFiles(files){
  for(const f of files){
    const res=await uploadFile(f);const row=el('div','card');row.style.padding='8px';
    if(res.ok){row.append(el('code',null,res.url),el('br'),el('code',null,res.markdown));}
    else{row.append(el('span','danger',res.message));}
    results.prepend(row);
  }
}
['dragenter','dragover'].forEach(ev=>drop.addEventListener(ev,e=>{e.preventDefault();drop.classList.add('drag');}));
['dragleave','drop'].forEach(ev=>drop.addEventListener(ev,e=>{e.preventDefault();drop.classList.remove('drag');}));
drop.addEventListener('drop',e=>{if(e.dataTransfer.files.length)handleFiles(e.dataTransfer.files);});
fileInput.addEventListener('change',()=>{handleFiles(fileInput.files);fileInput.value='';});
document.addEventListener('paste',e=>{
  const files=[...(e.clipboardData||{}).items||[]].filter(i=>i.kind==='file').map(i=>i.getAsFile()).filter(Boolean);
  if(files.length){e.preventDefault();handleFiles(files);}
});
"""

SHARE_JS = """
const grid=document.getElementById('grid');
const crumbs=document.getElementById('crumbs');
const info=document.getElementById('pager-info');
const prev=document.getElementById('prev');
const next=document.getElementById('next');
let prefix='';let page=1;
function go(p){prefix=p;page=1;load();}
async function load(){
  const r=await fetch(`/api/s/${SHARE_ID}/list?prefix=${encodeURIComponent(prefix)}&page=${page}&pageSize=${PAGE_SIZE}`);
  const data=await r.json();
  if(!r.ok||!data.success){grid.innerHTML='';grid.append(el('p','muted','This share link does not exist.'));return;}
  renderCrumbs(crumbs,prefix,go);grid.innerHTML='';
  for(const d of data.directories){
    const card=el('div','card');const tile=el('div','tile','\\u{1F4C1}');tile.onclick=()=>go(d.path);
    card.append(tile,el('div','caption',d.name));grid.append(card);
  }
  for(const f of data.files){
    if(f.placeholder)continue;
    const card=el('div','card');const img=el('img','thumb');img.loading='lazy';img.src=f.url;img.alt=f.name;
    img.onclick=()=>openPreview(f.url);card.append(img,el('div','caption',f.name));grid.append(card);
  }
  renderPager(info,prev,next,data.pagination);
}
prev.onclick=()=>{page--;load();};
next.onclick=()=>{page++;load();};
load();
"""


def _shell(title: str, body: str, script: str = "", nav: bool = False) -> str:
    links = ""
    if nav:
        links = "<nav><a class='btn' href='/upload'>Upload</a><a class='btn' href='/gallery'>Gallery</a></nav>"
    return f"""<!doctype html>
<html><head><meta charset='utf-8'><meta name='viewport' content='width=device-width, initial-scale=1'>
<title>{html.escape(title)}</title>
<style>{BASE_CSS}</style>
</head>
<body>
  <header><h1>{html.escape(title)}</h1>{links}</header>
  <main>{body}</main>
  <div id='preview' class='preview'><img alt='preview'/></div>
<script>{script}</script></body></html>"""


def login_page(title: str, error: str | None = None) -> str:
    message = f"<p class='danger'>{html.escape(error)}</p>" if error else ""
    body = f"""
    <form method='post' action='/login' class='toolbar'>
      <input type='password' name='key' placeholder='Secret key' autofocus required/>
      <button class='btn' type='submit'>Log in</button>
    </form>{message}"""
    return _shell(title, body)


def upload_page(title: str, max_file_mb: int) -> str:
    body = f"""
    <div id='drop' class='uploader'>
      <p>Drag & Drop images here or <label for='file' class='btn'>Select files</label></p>
      <p class='muted'>JPG/PNG/GIF/WEBP - max. {max_file_mb} MB - paste with Ctrl+V</p>
      <input id='file' type='file' accept='image/*' multiple/>
    </div>
    <div class='toolbar'><input id='path' placeholder='folder, e.g. blog/2024'/></div>
    <div id='results' class='results'></div>"""
    return _shell(title, body, f"const MAX_MB={max_file_mb};" + COMMON_JS + UPLOAD_JS, nav=True)


def gallery_page(title: str, page_size: int) -> str:
    body = """
    <div class='toolbar'>
      <button id='up' class='btn'>Up</button>
      <span id='crumbs' class='crumbs'></span>
    </div>
    <div class='toolbar'>
      <button id='mkdir' class='btn'>New folder</button>
      <button id='share' class='btn'>Share this folder</button>
      <button id='delete' class='btn danger'>Delete selected</button>
    </div>
    <div id='grid' class='grid'></div>
    <div class='pager'>
      <button id='prev' class='btn'>Prev</button>
      <button id='next' class='btn'>Next</button>
      <span id='pager-info' class='info'></span>
    </div>
    <h2>Share links</h2>
    <table><thead><tr><th>Folder</th><th>Link</th><th></th></tr></thead><tbody id='shares'></tbody></table>"""
    return _shell(title, body, f"const PAGE_SIZE={page_size};" + COMMON_JS + GALLERY_JS, nav=True)


def share_page(title: str, share_id: str, page_size: int) -> str:
    body = """
    <div class='toolbar'><span id='crumbs' class='crumbs'></span></div>
    <div id='grid' class='grid'></div>
    <div class='pager'>
      <button id='prev' class='btn'>Prev</button>
      <button id='next' class='btn'>Next</button>
      <span id='pager-info' class='info'></span>
    </div>"""
    script = f"const SHARE_ID={json.dumps(share_id)};const PAGE_SIZE={page_size};"
    return _shell(title, body, script + COMMON_JS + SHARE_JS)
