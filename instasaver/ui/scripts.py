"""JavaScript evaluated inside the Instagram page."""

# Installed with add_init_script. Serializes inserted elements that could be a
# menu and passes them to the __instaSaverMutation binding. Snapshot ids live
# in a WeakMap so that reading the page leaves the DOM untouched.
OBSERVER_JS = r"""
(() => {
  if (window.__instaSaverInstalled) return;
  window.__instaSaverInstalled = true;

  const SKIP = new Set(["SCRIPT", "STYLE", "NOSCRIPT", "TEMPLATE", "svg", "SVG"]);
  const ids = new WeakMap();
  const refs = new Map();
  const released = new FinalizationRegistry((id) => refs.delete(id));
  let seq = 0;

  function idOf(el) {
    let id = ids.get(el);
    if (!id) {
      id = String(++seq);
      ids.set(el, id);
      refs.set(id, new WeakRef(el));
      released.register(el, id);
    }
    return id;
  }

  function snapshot(el) {
    const attrs = {};
    for (const a of el.attributes) attrs[a.name] = a.value;
    let text = "";
    const children = [];
    for (const child of el.childNodes) {
      if (child.nodeType === Node.TEXT_NODE) text += child.textContent;
      else if (child.nodeType === Node.ELEMENT_NODE && !SKIP.has(child.tagName)) children.push(snapshot(child));
    }
    const r = el.getBoundingClientRect();
    return {
      id: idOf(el), tag: el.tagName.toLowerCase(), attrs, text,
      rect: { x: r.x, y: r.y, width: r.width, height: r.height },
      children,
    };
  }
  window.__instaSaverSnapshot = snapshot;
  window.__instaSaverElement = (id) => {
    const ref = refs.get(String(id));
    const el = ref ? ref.deref() : undefined;
    return el && el.isConnected ? el : null;
  };

  function mayBeMenu(node) {
    return node.matches('button, [role="button"], [role="link"]') ||
      node.querySelector('button, [role="button"], [role="link"]') !== null;
  }

  function start() {
    const observer = new MutationObserver((mutations) => {
      for (const mutation of mutations) {
        for (const node of mutation.addedNodes) {
          if (!(node instanceof HTMLElement)) continue;
          if (node.hasAttribute("data-insta-saver") || !mayBeMenu(node)) continue;
          window.__instaSaverMutation({ url: location.href, node: snapshot(node) });
        }
      }
    });
    observer.observe(document.body, { childList: true, subtree: true });
  }

  if (document.body) start();
  else document.addEventListener("DOMContentLoaded", start);
})();
"""

DOCUMENT_SNAPSHOT_JS = r"""
() => ({
  url: location.href,
  viewportHeight: window.innerHeight,
  root: window.__instaSaverSnapshot(document.body),
})
"""

# args: {menuId, kind, controls: [{id, label}], marker, color, weight}
INJECT_JS = r"""
(args) => {
  const menu = window.__instaSaverElement(args.menuId);
  if (!menu || menu.querySelector(`[${args.marker}]`)) return 0;

  function activate(controlId) {
    return (e) => {
      e.preventDefault();
      e.stopPropagation();
      window.__instaSaverActivate(controlId);
    };
  }

  function prepare(el, control) {
    el.setAttribute(args.marker, control.id);
    el.addEventListener("click", activate(control.id));
  }

  if (args.kind === "reel") {
    const template = menu.querySelector('[role="button"]');
    if (!template) return 0;
    const items = menu.querySelectorAll(':scope > [role="button"], :scope > [role="link"]');
    const before = items.length ? items[items.length - 1] : null;
    for (const control of args.controls) {
      const el = template.cloneNode(true);
      prepare(el, control);
      menu.insertBefore(el, before);
      window.__instaSaverSetLabel({ controlId: control.id, label: control.label, color: args.color, weight: args.weight });
    }
    return args.controls.length;
  }

  const buttons = Array.from(menu.querySelectorAll(":scope > button"));
  if (!buttons.length) return 0;
  const cancel = buttons.find((b) => b.textContent.trim().toLowerCase() === "cancel") || null;
  const template = cancel || buttons[0];
  for (const control of args.controls) {
    const el = template.cloneNode(true);
    prepare(el, control);
    el.setAttribute("tabindex", "0");
    el.textContent = control.label;
    el.style.color = args.color;
    el.style.fontWeight = args.weight;
    menu.insertBefore(el, cancel);
  }
  return args.controls.length;
}
"""

# args: {controlId, label, color, weight}
SET_LABEL_JS = r"""
(args) => {
  const el = document.querySelector(`[data-insta-saver="${args.controlId}"]`);
  if (!el) return false;
  const spans = Array.from(el.querySelectorAll("span"));
  if (!spans.length) {
    el.textContent = args.label;
    el.style.color = args.color;
    el.style.fontWeight = args.weight;
    return true;
  }
  // Reel items nest their text several spans deep
  let target = null;
  for (let i = spans.length - 1; i >= 0; i--) {
    if (spans[i].children.length === 0 && spans[i].textContent.trim()) { target = spans[i]; break; }
  }
  if (!target) target = spans.find((s) => s.children.length === 0) || null;
  if (target) target.textContent = args.label;
  for (const span of spans) {
    span.style.color = args.color;
    span.style.fontWeight = args.weight;
  }
  return true;
}
"""

# Defines window.__instaSaverSetLabel for use inside INJECT_JS. Wrapped so that
# evaluating it returns nothing rather than a function Playwright would call.
SET_LABEL_INIT_JS = "(() => { window.__instaSaverSetLabel = " + SET_LABEL_JS.strip() + "; })();"

# args: marker attribute name. Ids of the injected controls still attached.
LIVE_CONTROLS_JS = r"""
(marker) => Array.from(document.querySelectorAll(`[${marker}]`), (el) => el.getAttribute(marker))
"""
