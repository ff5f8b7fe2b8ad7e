# Services layer for BoxNow checkout and delivery logic
