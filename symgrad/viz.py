# symgrad/viz.py
from collections import defaultdict

# gradient plumbing that clutters a backward graph
TRIVIAL_OPS = {
    "reduce_to_shape", "broadcast_to_shape", "shape", "stop_gradient",
}

def trace(root):
    nodes, edges = set(), set()
    stack = [root]
    while stack:
        v = stack.pop()
        if v in nodes:
            continue
        nodes.add(v)
        for p in v.inputs:
            edges.add((p, v))
            stack.append(p)
    return nodes, edges

def _should_show(n, root, mode="full", hide_const=False):
    op = n.op.name
    is_root = (n is root)

    if hide_const and op == "constant" and not is_root:
        return False

    if mode == "full":
        return True

    if mode == "prune_trivial":
        if is_root:
            return True
        return op not in TRIVIAL_OPS

    if mode == "ops_only":
        # ops + root + named leaves
        if is_root or n.name is not None:
            return True
        return bool(n.inputs)

    raise ValueError(f"Unknown mode: {mode}")

def _fold_edges(nodes, edges, visible):
    """
    Drop hidden nodes, linking each visible ancestor to each visible
    descendant so connectivity survives.
    """
    parents = defaultdict(list)
    children = defaultdict(list)
    for a, b in edges:
        children[a].append(b)
        parents[b].append(a)

    def nearest_visible(v, links):
        out = set()
        stack = list(links[v])
        seen = set()
        while stack:
            u = stack.pop()
            if u in seen:
                continue
            seen.add(u)
            if visible[u]:
                out.add(u)
            else:
                stack.extend(links[u])
        return out

    new_edges = {(a, b) for a, b in edges if visible[a] and visible[b]}

    for v in nodes:
        if visible[v]:
            continue
        for a in nearest_visible(v, parents):
            for b in nearest_visible(v, children):
                if a is not b:
                    new_edges.add((a, b))

    return {n for n in nodes if visible[n]}, new_edges

def to_dot(root, mode="full", hide_const=False):
    nodes, edges = trace(root)
    visible = {n: _should_show(n, root, mode=mode, hide_const=hide_const) for n in nodes}
    nodes2, edges2 = _fold_edges(nodes, edges, visible)

    lines = ["digraph G {", "rankdir=LR;", "node [fontsize=10];"]

    for n in sorted(nodes2, key=lambda t: t.id):
        parts = [f"#{n.id}"]
        if n.name:
            parts.append(str(n.name))
        parts.append(f"op={n.op.name}")
        if n.shape is not None:
            parts.append(f"shape={n.shape}")
        label = "\\n".join(parts)

        if n is root:
            lines.append(f'node{n.id} [label="{label}", shape=box, style="filled", fillcolor="lightgray"];')
        else:
            lines.append(f'node{n.id} [label="{label}", shape=box];')

    for a, b in sorted(edges2, key=lambda e: (e[0].id, e[1].id)):
        lines.append(f"node{a.id} -> node{b.id};")

    lines.append("}")
    return "\n".join(lines)

def save_dot(root, path="graph.dot", **kwargs):
    dot = to_dot(root, **kwargs)
    with open(path, "w") as f:
        f.write(dot)
    return path
