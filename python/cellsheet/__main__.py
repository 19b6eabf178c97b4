from cellsheet.cli import main

raise SystemExit(main())
