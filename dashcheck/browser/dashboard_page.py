"""Playwright implementation of the page environment.

In-page scripts only dump raw registry data or apply a prepared change;
every decision about that data is made in Python.
"""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from dashcheck.interaction.controls import ControlChange

logger = logging.getLogger(__name__)

HIDDEN_CLASS = "dashboardr-sw-hidden"
ENHANCEMENT_REGISTRY = "dashboardrChoicesInstances"
REF_ATTR = "data-dashcheck-ref"

TAB_SELECTOR = ".panel-tabset .nav-link, .nav-tabs .nav-link"
SIDEBAR_TOGGLE_SELECTOR = '.collapse-toggle, [aria-controls^="bslib-sidebar-"]'
MODAL_TRIGGER_SELECTOR = "a[data-modal], a.modal-link"
MODAL_OVERLAY_SELECTOR = ".dashboardr-modal-overlay"
MODAL_CLOSE_SELECTOR = ".dashboardr-modal-close"
TOOLTIP_TARGET_SELECTOR = (
    '[data-bs-toggle="tooltip"], [data-tooltip], .highcharts-point, '
    ".js-plotly-plot .scatterlayer .point, .js-plotly-plot .barlayer .point, "
    ".leaflet-marker-icon, .girafe svg [data-id]"
)
TOOLTIP_SELECTOR = (
    ".tooltip.show, .highcharts-tooltip, .hoverlayer .hovertext, "
    '.leaflet-tooltip, .echarts4r div[style*="z-index: 9999999"], [role="tooltip"]'
)

_HELPERS = """
    const isVisible = (el) => {
        if (!el) return false;
        const st = window.getComputedStyle(el);
        if (!st || st.display === 'none' || st.visibility === 'hidden') return false;
        const r = el.getBoundingClientRect();
        return r.width > 0 && r.height > 0;
    };
    const arr = (v) => (Array.isArray(v) ? v : []);
"""

_INSTANCE_SCRIPTS = {
    "highcharter": """() => {""" + _HELPERS + """
        const charts = (window.Highcharts && Array.isArray(window.Highcharts.charts))
            ? window.Highcharts.charts.filter((c) => !!c && !!c.series) : [];
        const pt = (p) => {
            if (Array.isArray(p)) return p.slice(0, 2);
            if (p && typeof p === 'object') {
                const out = {};
                ['x', 'y', 'value'].forEach((k) => { if (p[k] !== undefined) out[k] = p[k]; });
                return out;
            }
            return p === undefined ? null : p;
        };
        return charts.map((c) => ({
            id: (c.renderTo && c.renderTo.id) || null,
            visible: isVisible(c.renderTo),
            series: c.series.map((s) => ({
                type: s.type || null,
                name: s.name || null,
                visible: s.visible !== false,
                options_visible: !(s.options && s.options.visible === false),
                xData: arr(s.xData).slice(),
                yData: arr(s.yData).slice(),
                points: arr(s.points).map(pt),
                data: arr(s.data).map(pt),
                options_data: arr(s.options && s.options.data).map(pt),
            })),
        }));
    }""",
    "plotly": """() => {""" + _HELPERS + """
        const fields = ['x', 'y', 'z', 'values', 'labels', 'q1', 'q3', 'median', 'lowerfence', 'upperfence'];
        return Array.from(document.querySelectorAll('.js-plotly-plot')).map((div) => ({
            id: div.id || null,
            visible: isVisible(div),
            traces: arr(div.data).map((t) => {
                const out = { type: t.type || null, visible: t.visible === undefined ? null : t.visible };
                fields.forEach((f) => { out[f] = arr(t[f]); });
                return out;
            }),
        }));
    }""",
    "echarts4r": """() => {""" + _HELPERS + """
        if (!window.echarts || typeof window.echarts.getInstanceByDom !== 'function') return [];
        const out = [];
        document.querySelectorAll('.echarts4r, .echarts, .html-widget').forEach((el) => {
            const inst = window.echarts.getInstanceByDom(el);
            if (!inst) return;
            let option = {};
            try {
                option = JSON.parse(JSON.stringify(inst.getOption ? inst.getOption() : {}));
            } catch (e) {
                option = {};
            }
            out.push({ id: el.id || null, visible: isVisible(el), option });
        });
        return out;
    }""",
    "ggiraph": """() => {""" + _HELPERS + """
        return Array.from(document.querySelectorAll('.girafe, .ggiraph, svg.girafe-svg, .html-widget.girafe'))
            .map((root) => ({
                id: root.id || null,
                visible: isVisible(root),
                shapes: root.querySelectorAll('circle, path, rect').length,
            }));
    }""",
    "leaflet": """() => {""" + _HELPERS + """
        return Array.from(document.querySelectorAll('.leaflet-container')).map((node) => ({
            id: node.id || null,
            visible: isVisible(node),
            layers: node.querySelectorAll('.leaflet-marker-icon, .leaflet-interactive').length,
        }));
    }""",
    "tables": """() => {""" + _HELPERS + """
        return Array.from(document.querySelectorAll('table')).map((table) => ({
            id: table.id || null,
            visible: isVisible(table),
            rows: Array.from(table.querySelectorAll('tbody tr')).map((tr) => ({
                placeholder: tr.classList.contains('dataTables_empty')
                    || !!tr.querySelector('td.dataTables_empty'),
                cells: Array.from(tr.querySelectorAll('td, th')).map((c) => (c.textContent || '').trim()),
            })),
        }));
    }""",
}

_READINESS_SCRIPT = """() => {
    const hc = (window.Highcharts && Array.isArray(window.Highcharts.charts))
        ? window.Highcharts.charts.filter((c) => !!c && !!c.series) : [];
    return {
        widgets: document.querySelectorAll('.htmlwidget-output, .html-widget').length,
        highcharts_series: hc.map((c) => c.series.length),
        plotly_traces: Array.from(document.querySelectorAll('.js-plotly-plot'))
            .map((d) => (Array.isArray(d.data) ? d.data.length : 0)),
        echarts_markers: document.querySelectorAll('[_echarts_instance_]').length,
    };
}"""

_CONTROLS_SCRIPT = """([refAttr, registryName]) => {""" + _HELPERS + """
    window.__dashcheckRefSeq = window.__dashcheckRefSeq || 0;
    const stamp = (el) => {
        if (!el.getAttribute(refAttr)) {
            window.__dashcheckRefSeq += 1;
            el.setAttribute(refAttr, 'c' + window.__dashcheckRefSeq);
        }
        return el.getAttribute(refAttr);
    };
    const registry = window[registryName] || {};
    const num = (v) => {
        if (v === null || v === undefined || v === '') return null;
        const n = Number(v);
        return Number.isFinite(n) ? n : null;
    };
    const filterVar = (el) => {
        const own = el.getAttribute('data-filter-var');
        if (own) return own.trim();
        const group = el.closest('[data-filter-var]');
        return group ? String(group.getAttribute('data-filter-var') || '').trim() : '';
    };
    const inputId = (el) => el.getAttribute('data-input-id') || el.getAttribute('name') || el.id || '';
    const labelOf = (el) => {
        const label = el.closest('label');
        return label ? (label.textContent || '').trim() : '';
    };
    const records = (list) => (Array.isArray(list) ? list.map((c) => ({
        value: c && c.value !== undefined ? c.value : null,
        label: String((c && c.label) || ''),
        selected: !!(c && c.selected),
        disabled: !!(c && c.disabled),
    })) : null);
    const enhancementOf = (sel) => {
        const inst = sel.id ? registry[sel.id] : null;
        if (!inst) return null;
        const store = inst._store || {};
        const storeChoices = Array.isArray(store.choices)
            ? store.choices : (store.state && Array.isArray(store.state.choices) ? store.state.choices : null);
        let rendered = null;
        if (inst.choiceList && inst.choiceList.element) {
            rendered = Array.from(inst.choiceList.element.querySelectorAll('[data-choice][data-value]'))
                .map((it) => ({ value: it.getAttribute('data-value'), label: (it.textContent || '').trim(),
                                selected: false, disabled: it.classList.contains('is-disabled') }));
        }
        let value = null;
        if (typeof inst.getValue === 'function') {
            try { value = inst.getValue(true); } catch (e) { value = null; }
        }
        return {
            store_choices: records(storeChoices),
            config_choices: records(inst.config && inst.config.choices),
            rendered_choices: rendered,
            value: value === undefined ? null : value,
        };
    };
    const base = (el, shape) => ({
        ref: stamp(el),
        shape,
        filter_var: filterVar(el),
        input_id: inputId(el),
        element_id: el.id || '',
        visible: isVisible(el),
        disabled: !!el.disabled,
    });
    const out = [];

    document.querySelectorAll('.dashboardr-checkbox-group, .dashboardr-radio-group').forEach((group) => {
        const isRadio = group.classList.contains('dashboardr-radio-group');
        const inputs = group.querySelectorAll(isRadio ? 'input[type="radio"]' : 'input[type="checkbox"]');
        const first = inputs[0];
        out.push(Object.assign(base(group, isRadio ? 'radio_group' : 'checkbox_group'), {
            input_id: inputId(group) || (first ? (first.getAttribute('name') || '') : ''),
            items: Array.from(inputs).map((i) => ({
                value: String(i.value), label: labelOf(i), checked: !!i.checked, disabled: !!i.disabled,
            })),
        }));
    });

    const selects = new Set(document.querySelectorAll(
        'select.dashboardr-input, select[data-filter-var], [data-linked-child-id] select[id]'));
    document.querySelectorAll('[data-linked-child-id]').forEach((w) => {
        const child = document.getElementById(w.getAttribute('data-linked-child-id') || '');
        if (child && child.tagName.toLowerCase() === 'select') selects.add(child);
    });
    selects.forEach((sel) => {
        const group = sel.closest('.dashboardr-input-group');
        const choices = group ? group.querySelector('.choices') : null;
        const wrapper = sel.closest('[data-linked-child-id]');
        let byParent = {};
        if (wrapper && wrapper.getAttribute('data-options-by-parent')) {
            try { byParent = JSON.parse(wrapper.getAttribute('data-options-by-parent')) || {}; } catch (e) { byParent = {}; }
        }
        out.push(Object.assign(base(sel, 'select'), {
            visible: isVisible(sel) || isVisible(group) || isVisible(choices),
            multiple: !!sel.multiple,
            value: sel.value,
            native_options: Array.from(sel.options || []).map((o) => ({
                value: String(o.value), label: (o.textContent || '').trim(),
                selected: !!o.selected, disabled: !!o.disabled,
            })),
            enhancement: enhancementOf(sel),
            linked_child_id: wrapper ? (wrapper.getAttribute('data-linked-child-id') || '') : '',
            options_by_parent: wrapper ? byParent : {},
        }));
    });

    document.querySelectorAll('input[type="range"]').forEach((el) => {
        out.push(Object.assign(base(el, 'slider'), {
            input_type: 'range', value: String(el.value), min: num(el.min), max: num(el.max), step: num(el.step),
        }));
    });

    document.querySelectorAll('.dashboardr-button-group').forEach((group) => {
        out.push(Object.assign(base(group, 'button_group'), {
            items: Array.from(group.querySelectorAll('.dashboardr-button-option')).map((b) => ({
                value: String(b.getAttribute('data-value') || (b.textContent || '').trim()),
                label: (b.textContent || '').trim(),
                checked: b.classList.contains('active'),
                disabled: !!b.disabled,
            })),
        }));
    });

    document.querySelectorAll('input[data-input-type="switch"]').forEach((el) => {
        out.push(Object.assign(base(el, 'switch'), {
            input_type: 'checkbox', value: el.checked ? 'true' : 'false',
        }));
    });

    document.querySelectorAll('input[data-filter-var]').forEach((el) => {
        const type = String(el.type || '').toLowerCase();
        if (el.getAttribute('data-input-type') === 'switch') return;
        if (type === 'text' || type === 'search') {
            out.push(Object.assign(base(el, 'text'), { input_type: type, value: String(el.value || '') }));
        } else if (type === 'number') {
            out.push(Object.assign(base(el, 'number'), {
                input_type: type, value: String(el.value || ''), min: num(el.min), max: num(el.max), step: num(el.step),
            }));
        }
    });
    return out;
}"""

_APPLY_SCRIPT = """([refAttr, registryName, change]) => {
    const el = document.querySelector(`[${refAttr}="${change.ref}"]`);
    if (!el) return false;
    const registry = window[registryName] || {};
    const fire = (node) => {
        node.dispatchEvent(new Event('input', { bubbles: true }));
        node.dispatchEvent(new Event('change', { bubbles: true }));
    };
    const clickInputOrLabel = (input) => {
        const label = input.closest('label');
        if (label && typeof label.click === 'function') { label.click(); return true; }
        if (typeof input.click === 'function') { input.click(); return true; }
        return false;
    };
    switch (change.operation) {
        case 'check': {
            const wanted = (change.values || []).map(String);
            let clicked = false;
            el.querySelectorAll('input[type="checkbox"], input[type="radio"]').forEach((input) => {
                if (input.disabled) return;
                const want = wanted.includes(String(input.value));
                if (input.type === 'radio' && !want) return;
                if (!!input.checked !== want) clicked = clickInputOrLabel(input) || clicked;
            });
            return clicked;
        }
        case 'select': {
            const inst = el.id ? registry[el.id] : null;
            if (el.multiple) {
                const values = (change.values || []).map(String);
                if (inst && typeof inst.removeActiveItems === 'function') {
                    inst.removeActiveItems();
                    inst.setChoiceByValue(values);
                } else {
                    Array.from(el.options).forEach((o) => { o.selected = values.includes(String(o.value)); });
                }
            } else {
                const value = String(change.value);
                if (inst && typeof inst.setChoiceByValue === 'function') inst.setChoiceByValue(value);
                if (String(el.value) !== value) el.value = value;
            }
            fire(el);
            return true;
        }
        case 'fill': {
            el.value = String(change.value);
            fire(el);
            return true;
        }
        case 'click': {
            if (change.value !== null && change.value !== undefined) {
                const target = Array.from(el.querySelectorAll('.dashboardr-button-option')).find((b) =>
                    String(b.getAttribute('data-value') || (b.textContent || '').trim()) === String(change.value));
                if (!target || typeof target.click !== 'function') return false;
                target.click();
                return true;
            }
            return clickInputOrLabel(el);
        }
        default:
            return false;
    }
}"""

# Reads each block's own style only: the page toggles the hidden class on the
# block itself, and ancestors (inactive tabs, collapsed cards) do not change
# its show-when state.
_SHOW_WHEN_SCRIPT = """(hiddenClass) => {
    return Array.from(document.querySelectorAll('[data-show-when]')).map((el, i) => {
        const st = window.getComputedStyle(el);
        const shown = !!st && st.display !== 'none' && st.visibility !== 'hidden'
            && !el.classList.contains(hiddenClass);
        return { key: el.id || `show-when-${i + 1}`, condition: el.getAttribute('data-show-when') || '', visible: shown };
    });
}"""

_SELECTOR_TEXT_SCRIPT = """([selectors, hiddenClass]) => {
    const isVisible = (el) => {
        if (!el) return false;
        if (el.classList && el.classList.contains(hiddenClass)) return false;
        const st = window.getComputedStyle(el);
        if (!st || st.display === 'none' || st.visibility === 'hidden' || st.opacity === '0') return false;
        const r = el.getBoundingClientRect();
        return r.width > 0 && r.height > 0;
    };
    const parts = [];
    selectors.forEach((selector) => {
        document.querySelectorAll(String(selector)).forEach((node) => {
            if (!isVisible(node)) return;
            const txt = String(node.innerText || node.textContent || '').trim().replace(/\\s+/g, ' ');
            if (txt) parts.push(`${selector}::${txt}`);
        });
    });
    return parts.join('|');
}"""

_TITLES_SCRIPT = """() => {
    const titles = [];
    const add = (t) => { if (t !== null && t !== undefined && String(t).trim()) titles.push(String(t)); };
    if (window.Highcharts && Array.isArray(window.Highcharts.charts)) {
        window.Highcharts.charts.filter((c) => !!c).forEach((c) => {
            add(c.options && c.options.title && c.options.title.text);
        });
    }
    document.querySelectorAll('.js-plotly-plot').forEach((div) => {
        const t = div.layout && div.layout.title;
        add(t && typeof t === 'object' ? t.text : t);
    });
    if (window.echarts && typeof window.echarts.getInstanceByDom === 'function') {
        document.querySelectorAll('.echarts4r, .echarts, .html-widget').forEach((el) => {
            const inst = window.echarts.getInstanceByDom(el);
            if (!inst || !inst.getOption) return;
            const t = inst.getOption().title;
            (Array.isArray(t) ? t : [t]).forEach((x) => add(x && x.text));
        });
    }
    return titles;
}"""

_CATEGORIES_SCRIPT = """() => {
    const found = [];
    const add = (v) => { const t = String(v === null || v === undefined ? '' : v).trim(); if (t) found.push(t); };
    if (window.Highcharts && Array.isArray(window.Highcharts.charts)) {
        window.Highcharts.charts.filter((c) => !!c && !!c.series).forEach((c) => {
            const axis = c.xAxis && c.xAxis[0];
            (axis && Array.isArray(axis.categories) ? axis.categories : []).forEach(add);
        });
    }
    document.querySelectorAll('.js-plotly-plot').forEach((div) => {
        (Array.isArray(div.data) ? div.data : []).forEach((t) => {
            (Array.isArray(t.x) ? t.x : []).filter((v) => typeof v === 'string').forEach(add);
        });
        const xaxis = (div.layout && div.layout.xaxis) || {};
        (Array.isArray(xaxis.ticktext) ? xaxis.ticktext : []).forEach(add);
        (Array.isArray(xaxis.categoryarray) ? xaxis.categoryarray : []).forEach(add);
    });
    if (window.echarts && typeof window.echarts.getInstanceByDom === 'function') {
        document.querySelectorAll('.echarts4r, .echarts, .html-widget').forEach((el) => {
            const inst = window.echarts.getInstanceByDom(el);
            if (!inst || !inst.getOption) return;
            const x = inst.getOption().xAxis;
            const axis = Array.isArray(x) ? x[0] : x;
            (axis && Array.isArray(axis.data) ? axis.data : []).forEach(add);
        });
    }
    return Array.from(new Set(found));
}"""

_EMPTY_CARDS_SCRIPT = """([minHeight, minWidth, hiddenClass]) => {
    const isVisible = (el) => {
        if (!el) return false;
        if (el.classList && el.classList.contains(hiddenClass)) return false;
        const st = window.getComputedStyle(el);
        if (!st || st.display === 'none' || st.visibility === 'hidden' || st.opacity === '0') return false;
        const r = el.getBoundingClientRect();
        return r.width > 0 && r.height > 0;
    };
    const content = ['.js-plotly-plot', '.echarts4r', '.echarts', '.highcharts-container', '.girafe',
                     '.leaflet-container', 'table', 'svg', 'img', 'iframe', 'video'];
    const cards = Array.from(document.querySelectorAll('.sidebar-content .card, .sidebar-content .bslib-card'));
    const empty = [];
    cards.forEach((card, idx) => {
        if (!isVisible(card)) return;
        const rect = card.getBoundingClientRect();
        if (rect.height < minHeight || rect.width < minWidth) return;
        const hasContent = content.some((sel) => Array.from(card.querySelectorAll(sel)).some(isVisible));
        const text = String(card.innerText || card.textContent || '').replace(/\\s+/g, ' ').trim();
        if (!hasContent && text.length < 40) {
            empty.push({ index: idx + 1, id: card.id || '', class_name: String(card.className || ''),
                         width: Math.round(rect.width), height: Math.round(rect.height), text });
        }
    });
    return empty;
}"""

_BODY_TEXT_SCRIPT = "() => (document && document.body ? document.body.innerText || '' : '')"

_SLIDER_TEXT_SCRIPT = """() => Array.from(document.querySelectorAll('.dashboardr-slider-value'))
    .map((el) => (el.textContent || '').trim()).join('|')"""

_VISIBLE_COUNT_SCRIPT = """(selector) => Array.from(document.querySelectorAll(selector)).filter((el) => {
    const st = window.getComputedStyle(el);
    if (!st || st.display === 'none' || st.visibility === 'hidden' || st.opacity === '0') return false;
    const r = el.getBoundingClientRect();
    return r.width > 0 && r.height > 0;
}).length"""


class DashboardPage:
    """Live dashboard page driven through Playwright."""

    def __init__(self, page: Page, viewport: tuple[int, int] | None = None):
        self.page = page
        self.viewport = viewport

    async def goto(self, url: str, timeout_ms: int) -> None:
        if self.viewport:
            await self.page.set_viewport_size({"width": self.viewport[0], "height": self.viewport[1]})
        logger.debug("Navigating to %s", url)
        await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def list_instances(self, kind: str) -> list[dict]:
        return await self.page.evaluate(_INSTANCE_SCRIPTS[kind])

    async def readiness_probe(self) -> dict:
        return await self.page.evaluate(_READINESS_SCRIPT)

    async def list_controls(self) -> list[dict]:
        return await self.page.evaluate(_CONTROLS_SCRIPT, [REF_ATTR, ENHANCEMENT_REGISTRY])

    async def apply_change(self, change: ControlChange) -> bool:
        logger.debug("Applying %s to %s (%s)", change.operation, change.ref, change.detail)
        return bool(await self.page.evaluate(
            _APPLY_SCRIPT, [REF_ATTR, ENHANCEMENT_REGISTRY, change.model_dump()],
        ))

    async def show_when_elements(self) -> list[dict]:
        return await self.page.evaluate(_SHOW_WHEN_SCRIPT, HIDDEN_CLASS)

    async def body_text(self) -> str:
        return await self.page.evaluate(_BODY_TEXT_SCRIPT)

    async def count_selector(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def slider_value_text(self) -> str:
        return await self.page.evaluate(_SLIDER_TEXT_SCRIPT)

    async def selector_text(self, selectors: list[str]) -> str:
        return await self.page.evaluate(_SELECTOR_TEXT_SCRIPT, [selectors, HIDDEN_CLASS])

    async def chart_titles(self) -> list[str]:
        return await self.page.evaluate(_TITLES_SCRIPT)

    async def category_labels(self) -> list[str]:
        return await self.page.evaluate(_CATEGORIES_SCRIPT)

    async def large_empty_cards(self, min_height: float, min_width: float) -> list[dict]:
        return await self.page.evaluate(_EMPTY_CARDS_SCRIPT, [min_height, min_width, HIDDEN_CLASS])

    async def active_tab(self) -> Optional[str]:
        active = self.page.locator(
            ".panel-tabset .nav-link.active, .nav-tabs .nav-link.active"
        ).first
        if not await active.count():
            return None
        return (await active.text_content() or "").strip()

    async def click_inactive_tab(self) -> bool:
        tab = self.page.locator(
            ".panel-tabset .nav-link:not(.active), .nav-tabs .nav-link:not(.active)"
        ).first
        if not await tab.count():
            return False
        await tab.click()
        return True

    async def sidebar_expanded(self) -> Optional[str]:
        toggle = self.page.locator(SIDEBAR_TOGGLE_SELECTOR).first
        if not await toggle.count():
            return None
        return await toggle.get_attribute("aria-expanded")

    async def click_sidebar_toggle(self) -> bool:
        toggle = self.page.locator(SIDEBAR_TOGGLE_SELECTOR).first
        if not await toggle.count():
            return False
        await toggle.click()
        return True

    async def open_modal(self) -> bool:
        trigger = self.page.locator(MODAL_TRIGGER_SELECTOR).first
        if not await trigger.count():
            return False
        await trigger.click()
        return True

    async def modal_visible(self) -> bool:
        return bool(await self.page.evaluate(_VISIBLE_COUNT_SCRIPT, MODAL_OVERLAY_SELECTOR))

    async def close_modal(self) -> None:
        close = self.page.locator(MODAL_CLOSE_SELECTOR).first
        if await close.count() and await close.is_visible():
            await close.click()
        else:
            await self.page.keyboard.press("Escape")

    async def visible_tooltips(self) -> int:
        return await self.page.evaluate(_VISIBLE_COUNT_SCRIPT, TOOLTIP_SELECTOR)

    async def hover_tooltip_target(self) -> bool:
        targets = self.page.locator(TOOLTIP_TARGET_SELECTOR)
        count = await targets.count()
        for i in range(min(count, 10)):
            target = targets.nth(i)
            if await target.is_visible():
                await target.hover()
                return True
        return False
