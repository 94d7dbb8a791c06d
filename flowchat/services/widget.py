"""Chat widget page served on GET /chat-widget."""

from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..repositories import FlowRepository

logger = logging.getLogger(__name__)

EMPTY_PAGE = "<!DOCTYPE html><html><head></head><body></body></html>"

WIDGET_DEFAULTS: dict[str, str] = {
    "mode": "widget",
    "theme": "light",
    "accent": "4A9BD9",
    "title": "Chat with us",
    "welcomeMessage": "Hi there! How can I help?",
    "position": "bottom-right",
    "brandName": "",
    "statusText": "Online now",
}


@dataclass
class WidgetOptions:
    """Display settings for one rendered widget page."""

    mode: str
    theme: str
    accent: str
    title: str
    welcome_message: str
    position: str
    brand_name: str
    status_text: str

    @classmethod
    def from_config(
        cls,
        config: Optional[dict[str, Any]],
        mode: Optional[str] = None,
        theme: Optional[str] = None,
    ) -> WidgetOptions:
        """Merge stored widget config over defaults; query overrides win."""
        merged = dict(WIDGET_DEFAULTS)
        for key, value in (config or {}).items():
            if key in merged and value not in (None, ""):
                merged[key] = str(value)
        return cls(
            mode=mode or merged["mode"],
            theme=theme or merged["theme"],
            accent=merged["accent"].lstrip("#"),
            title=merged["title"],
            welcome_message=merged["welcomeMessage"],
            position=merged["position"],
            brand_name=merged["brandName"],
            status_text=merged["statusText"],
        )

    @property
    def is_widget(self) -> bool:
        return self.mode == "widget"


def _js(value: Any) -> str:
    """JSON literal safe to drop inside a <script> element."""
    return json.dumps(value).replace("</", "<\\/")


def render_widget_page(options: WidgetOptions, chat_api_url: str) -> str:
    """Render the self-contained widget HTML document."""
    e = html.escape
    side = "left" if options.position.endswith("left") else "right"
    panel_class = "panel" if options.is_widget else "panel open full"
    brand = f'<div class="brand">{e(options.brand_name)}</div>' if options.brand_name else ""
    bubble = (
        '<button id="bubble" class="bubble" onclick="togglePanel()" aria-label="Open chat">&#128172;</button>'
        if options.is_widget
        else ""
    )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{e(options.title)}</title>
<style>
body{{margin:0;font-family:system-ui,sans-serif;background:transparent}}
body.dark{{color:#eee}}
.bubble{{position:fixed;bottom:20px;{side}:20px;width:56px;height:56px;border-radius:50%;border:0;background:#{e(options.accent)};color:#fff;font-size:24px;cursor:pointer}}
.panel{{position:fixed;bottom:90px;{side}:20px;width:360px;height:520px;display:none;flex-direction:column;border-radius:12px;overflow:hidden;box-shadow:0 8px 30px rgba(0,0,0,.2);background:#fff}}
body.dark .panel{{background:#1e1e1e}}
.panel.open{{display:flex}}
.panel.full{{inset:0;width:auto;height:auto;border-radius:0}}
.header{{padding:14px;background:#{e(options.accent)};color:#fff}}
.status{{font-size:12px;opacity:.85}}
#messages{{flex:1;overflow-y:auto;padding:12px}}
.msg{{margin:6px 0;padding:8px 12px;border-radius:10px;max-width:80%}}
.msg.user{{margin-left:auto;background:#{e(options.accent)};color:#fff}}
.msg.bot{{background:rgba(0,0,0,.06)}}
.input{{display:flex;border-top:1px solid rgba(0,0,0,.1)}}
.input input{{flex:1;border:0;padding:12px;background:transparent;color:inherit}}
.input button{{border:0;background:transparent;padding:0 14px;cursor:pointer}}
.brand{{font-size:11px;text-align:center;padding:4px;opacity:.6}}
</style>
</head>
<body class="{e(options.theme)}">
{bubble}
<div id="panel" class="{panel_class}">
<div class="header"><div class="title">{e(options.title)}</div><div class="status">{e(options.status_text)}</div></div>
<div id="messages"></div>
<div class="input">
<input id="input" type="text" placeholder="Type a message..." onkeydown="if(event.key==='Enter')sendMsg()">
<button onclick="sendMsg()" id="sendBtn">Send</button>
</div>
{brand}
</div>
<script>
var urlP=new URLSearchParams(window.location.search);
var FLOW=urlP.get('flow')||'';
var MODE={_js(options.mode)};
var API={_js(chat_api_url)};
var messages=[{{text:{_js(options.welcome_message)},sender:'bot'}}];
var isLoading=false;

function friendlyError(msg){{
  if(msg.indexOf('Invalid or inactive flow')!==-1)return'This chat service is currently unavailable. Please try again later.';
  if(msg.indexOf('Domain not allowed')!==-1)return'This chat service is not available on this website.';
  if(msg.indexOf('Message is required')!==-1)return'Please enter a message.';
  return'Something went wrong. Please try again.';
}}

function togglePanel(){{
  var p=document.getElementById('panel');
  p.classList.toggle('open');
  if(p.classList.contains('open'))document.getElementById('input').focus();
}}

function escapeHtml(t){{
  return t.replace(/&/g,'&amp;').replace(/</g,'&lt;').replace(/>/g,'&gt;');
}}

function renderMessages(){{
  var c=document.getElementById('messages');
  var h='';
  for(var i=0;i<messages.length;i++){{
    h+='<div class="msg '+messages[i].sender+'">'+escapeHtml(messages[i].text).replace(/\\n/g,'<br>')+'</div>';
  }}
  if(isLoading)h+='<div class="msg bot">...</div>';
  c.innerHTML=h;
  c.scrollTop=c.scrollHeight;
}}

async function sendMsg(){{
  var inp=document.getElementById('input');
  var txt=inp.value.trim();
  if(!txt||isLoading)return;
  messages.push({{text:txt,sender:'user'}});
  inp.value='';
  isLoading=true;
  renderMessages();
  try{{
    var hist=[];
    for(var i=1;i<messages.length-1;i++){{
      hist.push({{role:messages[i].sender==='user'?'user':'assistant',content:messages[i].text}});
    }}
    var r=await fetch(API,{{method:'POST',headers:{{'Content-Type':'application/json'}},body:JSON.stringify({{flow:FLOW,mode:MODE,message:txt,history:hist}})}});
    var d=await r.json();
    if(!r.ok)throw new Error(d.error||'Failed');
    messages.push({{text:d.reply,sender:'bot'}});
  }}catch(err){{
    messages.push({{text:friendlyError(err.message),sender:'bot'}});
  }}
  isLoading=false;
  renderMessages();
}}

renderMessages();
</script>
</body>
</html>"""


async def build_widget_page(
    flows: FlowRepository,
    identifier: Optional[str],
    chat_api_url: str,
    mode: Optional[str] = None,
    theme: Optional[str] = None,
) -> str:
    """Render the widget for ``identifier``; an inactive flow gets an empty page."""
    config: dict[str, Any] = {}
    if identifier:
        status = await flows.get_flow_status(identifier)
        if status is not None and status != "active":
            logger.info("Widget requested for inactive flow %s", identifier)
            return EMPTY_PAGE
        project = await flows.find_project(identifier)
        if project is not None and isinstance(project.chat_widget_config, dict):
            config = project.chat_widget_config

    return render_widget_page(WidgetOptions.from_config(config, mode, theme), chat_api_url)
