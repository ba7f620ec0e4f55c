# adaptcoder/core/fallbacks.py
"""
内置的兜底变更集。

模型回复无法解析、又确实是一个常见请求时，直接使用这里预先写好的补丁。
目前只有笔记功能（增删改 + localStorage 持久化 + 列表渲染）。
"""

import re
from typing import Callable, Dict, Optional

from patchflow.core.models import AddMethod, ChangeSet, InsertAfter, UpdateMethod

NOTE_CRUD_METHODS = """
    // Note-taking functionality
    addNote(noteData) {
        const note = {
            id: Date.now(),
            content: noteData.content || noteData,
            timestamp: new Date().toISOString(),
            type: noteData.type || 'general'
        };
        this.notes = this.notes || [];
        this.notes.push(note);
        this.saveNotesToStorage();
        if (this.currentPage === 'notes') {
            this.loadNotes();
        }
        return { success: true, note: note };
    }

    editNote(noteId, newContent) {
        this.notes = this.notes || [];
        const note = this.notes.find(n => n.id === noteId);
        if (!note) {
            return { success: false, error: 'Note not found' };
        }
        note.content = newContent;
        note.updatedAt = new Date().toISOString();
        this.saveNotesToStorage();
        if (this.currentPage === 'notes') {
            this.loadNotes();
        }
        return { success: true };
    }

    deleteNote(noteId) {
        this.notes = this.notes || [];
        const index = this.notes.findIndex(n => n.id === noteId);
        if (index === -1) {
            return { success: false, error: 'Note not found' };
        }
        this.notes.splice(index, 1);
        this.saveNotesToStorage();
        if (this.currentPage === 'notes') {
            this.loadNotes();
        }
        return { success: true };
    }
"""

NOTE_STORAGE_METHODS = """
    loadNotesFromStorage() {
        try {
            const savedNotes = localStorage.getItem('app-notes');
            this.notes = savedNotes ? JSON.parse(savedNotes) : [];
        } catch (error) {
            console.error('Error loading notes:', error);
            this.notes = [];
        }
    }

    saveNotesToStorage() {
        localStorage.setItem('app-notes', JSON.stringify(this.notes || []));
    }
"""

NOTE_CONSTRUCTOR_INIT = """        this.notes = [];
        this.loadNotesFromStorage();"""

NOTE_LIST_BODY = """        const notesList = document.getElementById('notesList');
        if (!notesList) {
            return;
        }
        if (!this.notes || this.notes.length === 0) {
            notesList.innerHTML = '<div class="note-item empty">No notes yet.</div>';
            return;
        }
        notesList.innerHTML = this.notes.map(note => `
            <div class="note-item" data-note-id="${note.id}">
                <div class="note-content">${note.content}</div>
                <div class="note-meta">${note.type || 'general'} - ${new Date(note.timestamp).toLocaleDateString()}</div>
                <button class="edit-note-btn" data-note-id="${note.id}">Edit</button>
                <button class="delete-note-btn" data-note-id="${note.id}">Delete</button>
            </div>
        `).join('');"""


def note_taking_change_set(target_file: str = "src/ui/app.js") -> ChangeSet:
    return ChangeSet(
        operations=[
            AddMethod(target_file, NOTE_CRUD_METHODS),
            AddMethod(target_file, NOTE_STORAGE_METHODS),
            InsertAfter(target_file, "constructor() {", NOTE_CONSTRUCTOR_INIT),
            UpdateMethod(target_file, "loadNotes", NOTE_LIST_BODY),
        ],
        description="Note-taking feature with add, edit, delete functionality",
        needs_restart=True,
        source="fallback",
    )


# 关键词 -> 兜底变更集工厂
FALLBACKS: Dict[str, Callable[[str], ChangeSet]] = {
    "note": note_taking_change_set,
}


def find_fallback(conversation_text: str, target_file: str = "src/ui/app.js") -> Optional[ChangeSet]:
    """对话文本中提到已知能力（如 note / notes）时返回对应的兜底变更集"""
    for keyword, factory in FALLBACKS.items():
        if re.search(rf"\b{re.escape(keyword)}", conversation_text, re.IGNORECASE):
            return factory(target_file)
    return None
