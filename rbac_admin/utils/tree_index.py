"""
通用树索引工具（权限树、部门树共用）
rbac_admin/utils/tree_index.py
核心功能：
1. 一次查询的(id, parent_id)列表构建 id->父节点 与 父节点->子节点 两张映射表，O(n)
2. 子孙/祖先遍历全部带visited集合，遇到环或重复访问直接停止，保证终止
3. 父节点不在索引中的节点视为根节点（父节点已删除/数据损坏时不丢节点）
"""
from collections import deque
from typing import Dict, Generic, Hashable, Iterable, List, Optional, Set, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)


class TreeIndex(Generic[K]):
    """基于邻接表的只读树索引"""

    def __init__(self, edges: Iterable[Tuple[K, Optional[K]]]):
        self._parent_of: Dict[K, Optional[K]] = {}
        self._children_of: Dict[K, List[K]] = {}
        for node_id, parent_id in edges:
            self._parent_of[node_id] = parent_id
        for node_id, parent_id in self._parent_of.items():
            if parent_id is not None and parent_id in self._parent_of:
                self._children_of.setdefault(parent_id, []).append(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._parent_of

    def __len__(self) -> int:
        return len(self._parent_of)

    def parent(self, node_id: K) -> Optional[K]:
        return self._parent_of.get(node_id)

    def children(self, node_id: K) -> List[K]:
        return list(self._children_of.get(node_id, []))

    def roots(self) -> List[K]:
        return [
            node_id for node_id, parent_id in self._parent_of.items()
            if parent_id is None or parent_id not in self._parent_of
        ]

    def descendants(self, node_id: K, include_self: bool = True) -> List[K]:
        """
        广度优先收集子孙节点
        返回顺序保证父节点先于子节点出现，倒序即为"叶子到根"的删除顺序
        """
        if node_id not in self._parent_of:
            return []
        visited: Set[K] = {node_id}
        ordered: List[K] = [node_id] if include_self else []
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for child in self._children_of.get(current, []):
                if child in visited:
                    continue
                visited.add(child)
                ordered.append(child)
                queue.append(child)
        return ordered

    def ancestors(self, node_id: K) -> List[K]:
        """由近及远返回祖先链（不含自身），遇环停止"""
        chain: List[K] = []
        visited: Set[K] = {node_id}
        current = self._parent_of.get(node_id)
        while current is not None and current in self._parent_of and current not in visited:
            visited.add(current)
            chain.append(current)
            current = self._parent_of.get(current)
        return chain

    def is_descendant(self, node_id: K, ancestor_id: K) -> bool:
        """node_id是否位于ancestor_id的子树内（含自身）"""
        return node_id == ancestor_id or ancestor_id in self.ancestors(node_id)
